from datetime import timedelta

from parkops.services.booking_service import get_booking
from parkops.tasks.celery_app import _redis_url_for_celery, celery
from parkops.tasks.worker_jobs import expire_holds


def test_sweep_expires_lapsed_holds(store, world, make_trip, hold, now):
    with store.session() as db:
        trip = make_trip(db)[0]
        fresh, _ = hold(db, trip.id, name="New Hold", now=now)
        stale, _ = hold(db, trip.id, name="Old Hold", now=now - timedelta(minutes=10))

    assert expire_holds(store, now=now) == {"expired": 1}
    assert expire_holds(store, now=now) == {"expired": 0}

    with store.session() as db:
        assert get_booking(db, stale.id).status == "EXPIRED"
        assert get_booking(db, stale.id).booking_status == "cancelled"
        assert get_booking(db, fresh.id).status == "RESERVED"

    assert expire_holds(store, now=now + timedelta(minutes=5)) == {"expired": 1}


def test_beat_schedule_points_at_registered_task():
    import parkops.tasks.jobs  # noqa: F401  registers the task

    entry = celery.conf.beat_schedule["expire-holds"]
    assert entry["task"] == "parkops.tasks.jobs.expire_holds"
    assert entry["task"] in celery.tasks


def test_rediss_url_gets_cert_option():
    assert _redis_url_for_celery("redis://localhost:6379/0") == "redis://localhost:6379/0"
    assert "ssl_cert_reqs=CERT_NONE" in _redis_url_for_celery("rediss://default:pw@host:6379")
