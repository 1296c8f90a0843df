from flask import Blueprint, jsonify
from vibequiz import get_context

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the vibequiz game server!'})

@main.route('/health')
def health():
    ctx = get_context()
    status = 200 if ctx.configured else 503
    return jsonify({'configured': ctx.configured}), status
