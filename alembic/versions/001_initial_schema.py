"""Initial schema.

Creates users, blog, MCP keys, courses and progress, gamification, shop,
leads, site settings, resources and MMFC mirror tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            name VARCHAR(100),
            email VARCHAR(255) UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            role VARCHAR(20) NOT NULL DEFAULT 'member',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            deleted_at TIMESTAMPTZ
        )
    """)

    # --- Blog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS blog_posts (
            id SERIAL PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            slug VARCHAR(255) UNIQUE NOT NULL,
            author VARCHAR(100),
            excerpt TEXT,
            content TEXT NOT NULL,
            content_json JSON,
            cover_image_url TEXT,
            og_image_url TEXT,
            og_title VARCHAR(255),
            og_description TEXT,
            meta_title VARCHAR(60),
            meta_description VARCHAR(160),
            meta_keywords TEXT,
            focus_keyword VARCHAR(100),
            canonical_url TEXT,
            meta_robots VARCHAR(50) NOT NULL DEFAULT 'index, follow',
            article_type VARCHAR(50) NOT NULL DEFAULT 'BlogPosting',
            industry VARCHAR(100),
            target_audience TEXT,
            key_concepts TEXT,
            published_at TIMESTAMPTZ,
            is_published BOOLEAN NOT NULL DEFAULT false,
            reading_time_minutes INTEGER,
            created_by INTEGER REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- MCP API keys ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS mcp_api_keys (
            id SERIAL PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            key_hash VARCHAR(64) UNIQUE NOT NULL,
            key_prefix VARCHAR(20) NOT NULL,
            permissions JSON NOT NULL DEFAULT '{"blog": ["read", "write"]}',
            last_used_at TIMESTAMPTZ,
            expires_at TIMESTAMPTZ,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_by INTEGER REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Courses ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS courses (
            id SERIAL PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            slug VARCHAR(255) UNIQUE NOT NULL,
            description TEXT,
            short_description VARCHAR(500),
            cover_image_url TEXT,
            difficulty VARCHAR(20) NOT NULL DEFAULT 'beginner',
            estimated_minutes INTEGER,
            is_published BOOLEAN NOT NULL DEFAULT false,
            is_featured BOOLEAN NOT NULL DEFAULT false,
            required_subscription_tier VARCHAR(50),
            display_order INTEGER NOT NULL DEFAULT 0,
            created_by INTEGER REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS course_modules (
            id SERIAL PRIMARY KEY,
            course_id INTEGER NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            title VARCHAR(255) NOT NULL,
            description TEXT,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_course_modules_course_id ON course_modules(course_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS lessons (
            id SERIAL PRIMARY KEY,
            module_id INTEGER NOT NULL REFERENCES course_modules(id) ON DELETE CASCADE,
            title VARCHAR(255) NOT NULL,
            slug VARCHAR(255) NOT NULL,
            description TEXT,
            content TEXT,
            video_url TEXT,
            video_duration_minutes INTEGER,
            is_preview BOOLEAN NOT NULL DEFAULT false,
            points_reward INTEGER NOT NULL DEFAULT 10,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_lesson_module_slug UNIQUE (module_id, slug)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_lessons_module_id ON lessons(module_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS enrollments (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            course_id INTEGER NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            enrolled_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            progress_percent INTEGER NOT NULL DEFAULT 0,
            completed_at TIMESTAMPTZ,
            CONSTRAINT uq_enrollment_user_course UNIQUE (user_id, course_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_enrollments_user_id ON enrollments(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_enrollments_course_id ON enrollments(course_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS lesson_completions (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            lesson_id INTEGER NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            time_spent_minutes INTEGER,
            points_awarded INTEGER NOT NULL DEFAULT 0,
            CONSTRAINT uq_completion_user_lesson UNIQUE (user_id, lesson_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_lesson_completions_user_id ON lesson_completions(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_lesson_completions_lesson_id ON lesson_completions(lesson_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS education_subscriptions (
            id SERIAL PRIMARY KEY,
            user_id INTEGER UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            tier VARCHAR(50) NOT NULL DEFAULT 'studio_systems',
            status VARCHAR(30) NOT NULL DEFAULT 'incomplete',
            stripe_subscription_id VARCHAR(255) UNIQUE,
            stripe_customer_id VARCHAR(255),
            current_period_end TIMESTAMPTZ,
            cancel_at_period_end BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Gamification ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_profiles (
            id SERIAL PRIMARY KEY,
            user_id INTEGER UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            points INTEGER NOT NULL DEFAULT 0,
            streak INTEGER NOT NULL DEFAULT 0,
            last_activity_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS points_transactions (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            reason VARCHAR(100) NOT NULL,
            reference_type VARCHAR(50),
            reference_id INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_points_transactions_user_id ON points_transactions(user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id SERIAL PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            slug VARCHAR(100) UNIQUE NOT NULL,
            description TEXT,
            icon_url TEXT,
            points_value INTEGER NOT NULL DEFAULT 0,
            trigger_type VARCHAR(50) NOT NULL,
            trigger_value INTEGER NOT NULL DEFAULT 1,
            is_secret BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id INTEGER NOT NULL REFERENCES achievements(id) ON DELETE CASCADE,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievement UNIQUE (user_id, achievement_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_achievements_user_id ON user_achievements(user_id)")

    # --- Shop ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS dashboard_products (
            id SERIAL PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            slug VARCHAR(255) UNIQUE NOT NULL,
            description TEXT,
            short_description VARCHAR(500),
            cover_image_url TEXT,
            product_type VARCHAR(20) NOT NULL DEFAULT 'one_time',
            price_in_cents INTEGER NOT NULL DEFAULT 0,
            currency VARCHAR(3) NOT NULL DEFAULT 'usd',
            yearly_price_in_cents INTEGER,
            delivery_type VARCHAR(30) NOT NULL DEFAULT 'download',
            download_url TEXT,
            access_instructions TEXT,
            is_published BOOLEAN NOT NULL DEFAULT false,
            is_featured BOOLEAN NOT NULL DEFAULT false,
            display_order INTEGER NOT NULL DEFAULT 0,
            stripe_product_id VARCHAR(255),
            stripe_price_id VARCHAR(255),
            stripe_yearly_price_id VARCHAR(255),
            stripe_synced_at TIMESTAMPTZ,
            meta_title VARCHAR(60),
            meta_description VARCHAR(160),
            og_image_url TEXT,
            created_by INTEGER REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS product_upsells (
            id SERIAL PRIMARY KEY,
            product_id INTEGER NOT NULL REFERENCES dashboard_products(id) ON DELETE CASCADE,
            upsell_product_id INTEGER NOT NULL REFERENCES dashboard_products(id) ON DELETE CASCADE,
            display_order INTEGER NOT NULL DEFAULT 0,
            discount_percent INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_product_upsell UNIQUE (product_id, upsell_product_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_product_upsells_product_id ON product_upsells(product_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS purchases (
            id SERIAL PRIMARY KEY,
            product_id INTEGER NOT NULL REFERENCES dashboard_products(id),
            customer_email VARCHAR(255) NOT NULL,
            customer_name VARCHAR(255),
            amount_paid_cents INTEGER NOT NULL,
            currency VARCHAR(3) NOT NULL DEFAULT 'usd',
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            stripe_payment_intent_id VARCHAR(255) UNIQUE,
            stripe_subscription_id VARCHAR(255) UNIQUE,
            stripe_customer_id VARCHAR(255),
            billing_interval VARCHAR(10),
            delivery_email_sent_at TIMESTAMPTZ,
            access_granted_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_purchases_product_id ON purchases(product_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_purchases_customer_email ON purchases(customer_email)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS purchase_items (
            id SERIAL PRIMARY KEY,
            purchase_id INTEGER NOT NULL REFERENCES purchases(id) ON DELETE CASCADE,
            product_id INTEGER NOT NULL REFERENCES dashboard_products(id),
            price_in_cents INTEGER NOT NULL,
            is_upsell BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_purchase_items_purchase_id ON purchase_items(purchase_id)")

    # --- Leads and applications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS applications (
            id SERIAL PRIMARY KEY,
            type VARCHAR(50) NOT NULL,
            name VARCHAR(255) NOT NULL,
            email VARCHAR(255) NOT NULL,
            phone VARCHAR(50),
            social_handle VARCHAR(255),
            interest TEXT,
            experiences TEXT,
            growth_areas TEXT,
            obstacles TEXT,
            willing_to_invest VARCHAR(50),
            additional_info TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            notes TEXT,
            reviewed_by INTEGER REFERENCES users(id),
            reviewed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS leads (
            id SERIAL PRIMARY KEY,
            email VARCHAR(255) NOT NULL,
            name VARCHAR(255),
            product_slug VARCHAR(255),
            product_name VARCHAR(255),
            source VARCHAR(50) NOT NULL DEFAULT 'free_product',
            delivery_email_sent_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_leads_email ON leads(email)")

    # --- Site settings ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS link_settings (
            id SERIAL PRIMARY KEY,
            key VARCHAR(100) UNIQUE NOT NULL,
            label VARCHAR(255) NOT NULL,
            url TEXT NOT NULL,
            updated_by INTEGER REFERENCES users(id),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS seo_settings (
            id SERIAL PRIMARY KEY,
            page VARCHAR(100) UNIQUE NOT NULL,
            title VARCHAR(255) NOT NULL,
            description TEXT NOT NULL,
            keywords TEXT,
            og_title VARCHAR(255),
            og_description TEXT,
            og_image_url TEXT,
            og_type VARCHAR(50) NOT NULL DEFAULT 'website',
            twitter_card VARCHAR(50) NOT NULL DEFAULT 'summary_large_image',
            twitter_title VARCHAR(255),
            twitter_description TEXT,
            twitter_image_url TEXT,
            canonical_url TEXT,
            meta_robots VARCHAR(50) NOT NULL DEFAULT 'index, follow',
            updated_by INTEGER REFERENCES users(id),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Resources ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS resources (
            id SERIAL PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            slug VARCHAR(255) UNIQUE NOT NULL,
            description TEXT,
            content TEXT,
            category VARCHAR(50) NOT NULL DEFAULT 'general',
            thumbnail_url TEXT,
            download_url TEXT,
            notion_url TEXT,
            file_type VARCHAR(20),
            is_published BOOLEAN NOT NULL DEFAULT false,
            is_featured BOOLEAN NOT NULL DEFAULT false,
            required_subscription_tier VARCHAR(50),
            display_order INTEGER NOT NULL DEFAULT 0,
            download_count INTEGER NOT NULL DEFAULT 0,
            created_by INTEGER REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- MMFC mirror ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS mmfc_api_keys (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name VARCHAR(100) NOT NULL,
            api_key TEXT NOT NULL,
            base_url TEXT NOT NULL DEFAULT 'https://makemoneyfromcoding.com',
            auto_sync BOOLEAN NOT NULL DEFAULT false,
            sync_frequency VARCHAR(20) NOT NULL DEFAULT 'daily',
            last_sync_at TIMESTAMPTZ,
            last_sync_status VARCHAR(20),
            last_sync_error TEXT,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_mmfc_api_keys_user_id ON mmfc_api_keys(user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS mmfc_products (
            id SERIAL PRIMARY KEY,
            api_key_id INTEGER NOT NULL REFERENCES mmfc_api_keys(id) ON DELETE CASCADE,
            external_id INTEGER NOT NULL,
            title VARCHAR(255) NOT NULL,
            slug VARCHAR(255) NOT NULL,
            description TEXT,
            pricing_type VARCHAR(50),
            price VARCHAR(50),
            sale_price VARCHAR(50),
            delivery_type VARCHAR(50),
            cover_image TEXT,
            featured_image_url TEXT,
            featured_image_alt TEXT,
            images JSON,
            video_url TEXT,
            has_files BOOLEAN NOT NULL DEFAULT false,
            file_count INTEGER NOT NULL DEFAULT 0,
            has_repository BOOLEAN NOT NULL DEFAULT false,
            checkout_url TEXT,
            is_visible BOOLEAN NOT NULL DEFAULT true,
            synced_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_mmfc_product_key_external UNIQUE (api_key_id, external_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_mmfc_products_api_key_id ON mmfc_products(api_key_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS mmfc_scheduling_links (
            id SERIAL PRIMARY KEY,
            api_key_id INTEGER NOT NULL REFERENCES mmfc_api_keys(id) ON DELETE CASCADE,
            external_id INTEGER NOT NULL,
            slug VARCHAR(255) NOT NULL,
            title VARCHAR(255) NOT NULL,
            description TEXT,
            duration_minutes INTEGER NOT NULL,
            booking_url TEXT NOT NULL,
            max_advance_booking_days INTEGER,
            min_notice_minutes INTEGER,
            is_enabled BOOLEAN NOT NULL DEFAULT true,
            synced_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_mmfc_link_key_external UNIQUE (api_key_id, external_id)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_mmfc_scheduling_links_api_key_id ON mmfc_scheduling_links(api_key_id)"
    )
    op.execute("""
        CREATE TABLE IF NOT EXISTS mmfc_services (
            id SERIAL PRIMARY KEY,
            api_key_id INTEGER NOT NULL REFERENCES mmfc_api_keys(id) ON DELETE CASCADE,
            external_id INTEGER NOT NULL,
            title VARCHAR(255) NOT NULL,
            slug VARCHAR(255) NOT NULL,
            url TEXT,
            description TEXT,
            pricing_type VARCHAR(50),
            price NUMERIC(10, 2),
            sale_price NUMERIC(10, 2),
            featured_image_url TEXT,
            cover_image TEXT,
            is_visible BOOLEAN NOT NULL DEFAULT true,
            synced_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_mmfc_service_key_external UNIQUE (api_key_id, external_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_mmfc_services_api_key_id ON mmfc_services(api_key_id)")


def downgrade() -> None:
    for table in (
        "mmfc_services",
        "mmfc_scheduling_links",
        "mmfc_products",
        "mmfc_api_keys",
        "resources",
        "seo_settings",
        "link_settings",
        "leads",
        "applications",
        "purchase_items",
        "purchases",
        "product_upsells",
        "dashboard_products",
        "user_achievements",
        "achievements",
        "points_transactions",
        "user_profiles",
        "education_subscriptions",
        "lesson_completions",
        "enrollments",
        "lessons",
        "course_modules",
        "courses",
        "mcp_api_keys",
        "blog_posts",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
