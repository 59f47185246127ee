"""seed roles and categories

Revision ID: a58e0f13d6c4
Revises: 7e42b9d0c8f3
Create Date: 2026-10-19 09:40:17.003941

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = 'a58e0f13d6c4'
down_revision: Union[str, Sequence[str], None] = '7e42b9d0c8f3'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute(
        """
        INSERT INTO roles (name)
        VALUES ('CUSTOMER'), ('ADMIN')
        ON CONFLICT (name) DO NOTHING
        """
    )
    op.execute(
        """
        INSERT INTO categories (name, slug)
        VALUES ('Cars', 'cars'), ('Tech', 'tech'), ('Cash', 'cash'), ('Holidays', 'holidays')
        ON CONFLICT DO NOTHING
        """
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DELETE FROM categories WHERE slug IN ('cars', 'tech', 'cash', 'holidays')")
