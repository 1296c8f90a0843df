"""Quiz domain services: sessions, roster, answer ledger, scoring.

This package holds the game rules and the read/write protocol against the
shared store. HTTP routes and socket handlers import from here, keeping
transport concerns separated from core game mechanics.
"""
