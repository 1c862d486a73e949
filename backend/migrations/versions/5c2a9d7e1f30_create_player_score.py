"""create player_score table

Revision ID: 5c2a9d7e1f30
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9d7e1f30'
down_revision = None
branch_labels = None
depends_on = None

DEFAULT_PLAYERS = ['raehan', 'omar', 'mahir', 'hadi', 'fawaz']


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Tables created lazily by the app before migrations were introduced are left alone
    if 'player_score' in set(insp.get_table_names()):
        return

    table = op.create_table(
        'player_score',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('player', sa.String(length=64), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )
    op.create_index('ix_player_score_player', 'player_score', ['player'], unique=True)
    op.bulk_insert(table, [{'player': p, 'score': 0} for p in DEFAULT_PLAYERS])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'player_score' not in set(insp.get_table_names()):
        return
    op.drop_index('ix_player_score_player', table_name='player_score')
    op.drop_table('player_score')
