#!/usr/bin/env python3
"""
Initialize the WasteWise database on Supabase
Creates all necessary tables and sample data
"""

import sys
import uuid
from datetime import datetime, timedelta, timezone

from wastewise import config
from wastewise.services.gamification import level_for_points


def sample_rows():
    """Users with points, an upcoming event and an open complaint"""
    users = [
        {'id': str(uuid.uuid4()), 'email': 'admin@wastewise.app'},
        {'id': str(uuid.uuid4()), 'email': 'jane.doe@example.com'},
        {'id': str(uuid.uuid4()), 'email': 'green_volunteer@example.com'},
    ]

    user_points = []
    for user, points in zip(users, [12500, 2600, 400]):
        user_points.append({
            'user_id': user['id'],
            'points': points,
            'level': level_for_points(points),
            'updated_at': datetime.now(timezone.utc).isoformat()
        })

    events = [{
        'id': str(uuid.uuid4()),
        'user_id': users[0]['id'],
        'title': 'Riverside clean-up',
        'description': 'Collect and sort litter along the river bank. Gloves and bags provided.',
        'location': 'Riverside Park, north entrance',
        'date': (datetime.now(timezone.utc) + timedelta(days=14)).isoformat(),
        'max_participants': 25,
        'current_participants': 0
    }]

    complaints = [{
        'id': str(uuid.uuid4()),
        'user_id': users[1]['id'],
        'title': 'Overflowing bins at the market',
        'description': 'The public bins next to the market have not been emptied for a week.',
        'location': 'Central Market, east gate',
        'status': 'pending',
        'upvotes': 0,
        'media_urls': [],
        'authority_notified': False,
        'authority_updates': []
    }]

    return {'users': users, 'user_points': user_points, 'events': events, 'complaints': complaints}


def init_database(manager=None, create_tables: bool = True):
    """Create tables (when a DATABASE_URL is configured) and insert sample rows"""
    if manager is None:
        from wastewise.database import get_db_manager
        manager = get_db_manager()

    try:
        if create_tables and manager.engine is not None:
            print("📊 Creating database tables...")
            manager.create_tables()

        supabase = manager.get_supabase_client()
        rows = sample_rows()

        print("👥 Creating sample users...")
        for user in rows['users']:
            supabase.table('users').insert(user).execute()
            print(f"   ✅ Created user: {user['email']}")

        print("🏆 Creating sample points...")
        for entry in rows['user_points']:
            supabase.table('user_points').upsert(entry, on_conflict='user_id').execute()
            print(f"   ✅ {entry['points']} points (level {entry['level']})")

        print("📅 Creating sample event...")
        for event in rows['events']:
            supabase.table('events').insert(event).execute()
            print(f"   ✅ Created event: {event['title']}")

        print("📣 Creating sample complaint...")
        for complaint in rows['complaints']:
            supabase.table('complaints').insert(complaint).execute()
            print(f"   ✅ Created complaint: {complaint['title']}")

        print("\n🎉 Database initialization completed successfully!")
        return rows

    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        raise


if __name__ == "__main__":
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        print("❌ Error: SUPABASE_URL and SUPABASE_KEY must be set in .env file")
        print("📝 Please create a .env file based on .env.example")
        sys.exit(1)

    print("♻️ Initializing WasteWise Database with Supabase...")
    init_database()
