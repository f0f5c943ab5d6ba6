from types import SimpleNamespace

from wastewise.init_db import init_database, sample_rows
from wastewise.models import Base
from wastewise.services.gamification import level_for_points


def test_sample_points_have_matching_levels():
    for entry in sample_rows()['user_points']:
        assert entry['level'] == level_for_points(entry['points'])


def test_init_database_seeds_tables(supabase):
    created = []
    manager = SimpleNamespace(
        engine=object(),
        create_tables=lambda: created.append(True),
        get_supabase_client=lambda: supabase,
    )

    rows = init_database(manager)

    assert created == [True]
    assert len(supabase.rows('users')) == len(rows['users'])
    assert len(supabase.rows('user_points')) == 3
    assert supabase.rows('events')[0]['title'] == 'Riverside clean-up'
    assert supabase.rows('complaints')[0]['authority_notified'] is False


def test_schema_enforces_one_upvote_per_user():
    table = Base.metadata.tables['complaint_upvotes']
    unique = [c for c in table.constraints if c.__class__.__name__ == 'UniqueConstraint']
    assert [sorted(col.name for col in c.columns) for c in unique] == [['complaint_id', 'user_id']]


def test_schema_tables():
    assert {'users', 'waste_reports', 'carbon_footprints', 'user_points', 'point_transactions',
            'complaints', 'complaint_upvotes', 'events', 'event_participants'} <= set(Base.metadata.tables)
