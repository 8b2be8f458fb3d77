# ===== slotbook/scripts/seed_availability.py =====
"""
Seed a demo provider with a weekday schedule, one service and a busy block.

    python -m slotbook.scripts.seed_availability
"""
import logging
from datetime import datetime, timedelta, timezone

from slotbook.config.database import SessionLocal, create_tables
from slotbook.models import Profile, Service
from slotbook.services.schedule.schedule_service import ScheduleService
from slotbook.utils.my_logging import setup_logging

logger = logging.getLogger(__name__)

DEMO_USERNAME = "demo-provider"
DEMO_TIMEZONE = "America/New_York"


def seed_availability():
    create_tables()
    db = SessionLocal()

    try:
        provider = db.query(Profile).filter(Profile.username == DEMO_USERNAME).first()
        if provider is None:
            provider = Profile(username=DEMO_USERNAME, full_name="Demo Provider", timezone=DEMO_TIMEZONE)
            db.add(provider)
            db.flush()
            db.add(Service(provider_id=provider.id, name="Consultation", duration_minutes=30))
            db.commit()

        # 1. Mon-Fri 09:00-17:00 local (1=Monday ... 5=Friday)
        ScheduleService.replace_weekly_rules(db, provider.id, [
            {"day_of_week": day, "start_time_local": "09:00", "end_time_local": "17:00"}
            for day in range(1, 6)
        ])

        # 2. Ten minutes of breathing room after each appointment
        ScheduleService.update_settings(db, provider.id, {
            "buffer_before_minutes": 0,
            "buffer_after_minutes": 10,
            "min_notice_minutes": 120,
        })

        # 3. Example busy block: lunch tomorrow
        tomorrow_noon = (datetime.now(timezone.utc) + timedelta(days=1)).replace(
            hour=16, minute=0, second=0, microsecond=0
        )
        ScheduleService.add_busy_block(db, provider.id, {
            "start_at": tomorrow_noon,
            "end_at": tomorrow_noon + timedelta(hours=1),
            "title": "Lunch",
        })

        logger.info(f"✅ Demo provider '{DEMO_USERNAME}' ({provider.id}) seeded successfully!")

    except Exception:
        db.rollback()
        logger.exception("❌ Error seeding availability")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    seed_availability()
