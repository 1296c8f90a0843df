"""create store_document table

Revision ID: 5c2d7e91a0b4
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d7e91a0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Tolerate databases created earlier with `flask init-store`
    if 'store_document' in set(insp.get_table_names()):
        return

    op.create_table(
        'store_document',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('collection', sa.String(length=32), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )
    with op.batch_alter_table('store_document') as batch_op:
        batch_op.create_index('ix_store_document_collection', ['collection'], unique=False)


def downgrade():
    with op.batch_alter_table('store_document') as batch_op:
        batch_op.drop_index('ix_store_document_collection')
    op.drop_table('store_document')
