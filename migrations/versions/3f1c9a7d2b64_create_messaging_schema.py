"""create messaging schema

Revision ID: 3f1c9a7d2b64
Revises:
Create Date: 2026-10-17 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op

from club_messaging import config

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b64'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Table prefixes of the general and admin/club variants
VARIANT_PREFIXES = ('', 'admin_')

# Channel the listener subscribes to; baked into the trigger function
NOTIFY_CHANNEL = config.CHANGE_FEED_CHANNEL


def upgrade() -> None:
    """Upgrade schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Step 1: Functions (required before triggers)
    op.execute('''
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ language 'plpgsql'
    ''')

    op.execute(f'''
        CREATE OR REPLACE FUNCTION notify_messaging_change()
        RETURNS TRIGGER AS $$
        BEGIN
            PERFORM pg_notify(
                '{NOTIFY_CHANNEL}',
                json_build_object(
                    'table', TG_TABLE_NAME,
                    'operation', TG_OP,
                    'id', NEW.id,
                    'org_id', NEW.org_id
                )::text
            );
            RETURN NEW;
        END;
        $$ language 'plpgsql'
    ''')

    # Step 2: Directory tables owned by the dashboard (skip if they exist)
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            full_name VARCHAR(255),
            email VARCHAR(255),
            avatar_url VARCHAR(1024),
            role VARCHAR(50),
            club_id UUID,
            org_id UUID
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS clubs (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name VARCHAR(255) NOT NULL,
            cover_image_url VARCHAR(1024),
            org_id UUID,
            primary_user_id UUID
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS officers (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id UUID,
            club_id UUID,
            role VARCHAR(100)
        )
    """)

    # Step 3: Messaging tables, once per variant
    for prefix in VARIANT_PREFIXES:
        conversations = f'{prefix}conversations'
        members = f'{prefix}conversation_members'
        messages = f'{prefix}messages'
        reads = f'{prefix}message_reads'

        op.execute(f"""
            CREATE TABLE IF NOT EXISTS {conversations} (
                id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
                org_id UUID NOT NULL,
                category VARCHAR(20) NOT NULL CHECK (category IN ('clubs', 'officers', 'admins', 'others', 'dm')),
                target_type VARCHAR(20) CHECK (target_type IN ('club', 'officer', 'admin', 'other')),
                target_id UUID,
                subject VARCHAR(255),
                campus_id UUID,
                created_by UUID,
                created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
                updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
                last_message_at TIMESTAMP WITH TIME ZONE
            )
        """)

        op.execute(f"""
            CREATE TABLE IF NOT EXISTS {members} (
                conversation_id UUID NOT NULL REFERENCES {conversations}(id) ON DELETE CASCADE,
                user_id UUID NOT NULL,
                org_id UUID NOT NULL,
                member_type VARCHAR(20) NOT NULL CHECK (member_type IN ('admin', 'club', 'officer', 'other')),
                club_id UUID,
                created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
                PRIMARY KEY (conversation_id, user_id)
            )
        """)

        op.execute(f"""
            CREATE TABLE IF NOT EXISTS {messages} (
                id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
                conversation_id UUID NOT NULL REFERENCES {conversations}(id) ON DELETE CASCADE,
                org_id UUID NOT NULL,
                sender_id UUID NOT NULL,
                sender_type VARCHAR(20) NOT NULL CHECK (sender_type IN ('admin', 'club', 'officer', 'other')),
                body TEXT NOT NULL,
                created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                edited_at TIMESTAMP WITH TIME ZONE
            )
        """)

        op.execute(f"""
            CREATE TABLE IF NOT EXISTS {reads} (
                conversation_id UUID NOT NULL REFERENCES {conversations}(id) ON DELETE CASCADE,
                user_id UUID NOT NULL,
                org_id UUID NOT NULL,
                last_read_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
                PRIMARY KEY (conversation_id, user_id)
            )
        """)

        # Step 4: Indexes
        op.execute(f'CREATE INDEX IF NOT EXISTS idx_{conversations}_org ON {conversations}(org_id)')
        op.execute(f'CREATE INDEX IF NOT EXISTS idx_{conversations}_activity ON {conversations}(last_message_at DESC NULLS LAST, updated_at DESC)')
        op.execute(f'CREATE INDEX IF NOT EXISTS idx_{members}_user ON {members}(user_id, org_id)')
        op.execute(f'CREATE INDEX IF NOT EXISTS idx_{members}_club ON {members}(club_id)')
        op.execute(f'CREATE INDEX IF NOT EXISTS idx_{messages}_conversation_created ON {messages}(conversation_id, created_at DESC, id DESC)')
        op.execute(f'CREATE INDEX IF NOT EXISTS idx_{messages}_org ON {messages}(org_id)')

        # Step 5: Triggers (only after tables exist)
        op.execute(f'''
            CREATE TRIGGER update_{conversations}_updated_at
                BEFORE UPDATE ON {conversations}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
        ''')

        op.execute(f'''
            CREATE TRIGGER notify_{messages}_insert
                AFTER INSERT ON {messages}
                FOR EACH ROW EXECUTE FUNCTION notify_messaging_change()
        ''')

        op.execute(f'''
            CREATE TRIGGER notify_{conversations}_update
                AFTER UPDATE ON {conversations}
                FOR EACH ROW EXECUTE FUNCTION notify_messaging_change()
        ''')


def downgrade() -> None:
    """Downgrade schema."""
    # Directory tables belong to the dashboard and are left in place
    for prefix in VARIANT_PREFIXES:
        op.execute(f'DROP TABLE IF EXISTS {prefix}message_reads')
        op.execute(f'DROP TABLE IF EXISTS {prefix}messages')
        op.execute(f'DROP TABLE IF EXISTS {prefix}conversation_members')
        op.execute(f'DROP TABLE IF EXISTS {prefix}conversations')
    op.execute('DROP FUNCTION IF EXISTS notify_messaging_change()')
