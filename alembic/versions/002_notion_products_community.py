"""Notion products and community tables.

Creates notion_products (imported from the Notion products database) and the
member community: community_posts, post_comments, post_likes.

Revision ID: 002_notion_products_community
Revises: 001_initial_schema
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_notion_products_community"
down_revision: str | None = "001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Notion products ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notion_products (
            id SERIAL PRIMARY KEY,
            notion_page_id VARCHAR(64) UNIQUE NOT NULL,
            title VARCHAR(255) NOT NULL,
            slug VARCHAR(255) NOT NULL,
            description TEXT,
            content TEXT,
            excerpt TEXT,
            price VARCHAR(50),
            sale_price VARCHAR(50),
            product_type VARCHAR(100),
            category VARCHAR(255),
            cover_image_url TEXT,
            checkout_url TEXT,
            preview_url TEXT,
            is_published BOOLEAN NOT NULL DEFAULT false,
            is_featured BOOLEAN NOT NULL DEFAULT false,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_by INTEGER REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_notion_products_slug ON notion_products(slug)")

    # --- Community ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS community_posts (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            course_id INTEGER REFERENCES courses(id) ON DELETE SET NULL,
            title VARCHAR(255) NOT NULL,
            content TEXT NOT NULL,
            post_type VARCHAR(30) NOT NULL DEFAULT 'discussion',
            is_pinned BOOLEAN NOT NULL DEFAULT false,
            likes_count INTEGER NOT NULL DEFAULT 0,
            comments_count INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_community_posts_user ON community_posts(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_community_posts_course ON community_posts(course_id)")
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_community_posts_feed
        ON community_posts(is_pinned DESC, created_at DESC)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS post_comments (
            id SERIAL PRIMARY KEY,
            post_id INTEGER NOT NULL REFERENCES community_posts(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            parent_id INTEGER REFERENCES post_comments(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_post_comments_post ON post_comments(post_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_post_comments_user ON post_comments(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS post_likes (
            id SERIAL PRIMARY KEY,
            post_id INTEGER NOT NULL REFERENCES community_posts(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_post_like UNIQUE (post_id, user_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_post_likes_post ON post_likes(post_id)")


def downgrade() -> None:
    for table in ("post_likes", "post_comments", "community_posts", "notion_products"):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
