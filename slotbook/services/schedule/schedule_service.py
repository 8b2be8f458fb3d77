# ===== slotbook/services/schedule/schedule_service.py =====
"""
Provider-side schedule management: weekly rules, buffer/notice settings
and busy blocks. These are called from provider tooling, so errors are
raised rather than wrapped in result objects.
"""
import logging
from typing import Any, Iterable, List, Mapping, Union
from uuid import UUID

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from slotbook.core.exceptions import ProviderNotFound, ValidationError
from slotbook.models import AvailabilityRule, AvailabilitySettings, BusyBlock, Profile
from slotbook.schemas.availability import AvailabilityRuleIn, AvailabilitySettingsIn, BusyBlockIn
from slotbook.services.repository.scheduling_repository import as_uuid

logger = logging.getLogger(__name__)


def _coerce(schema, value: Union[BaseModel, Mapping[str, Any]]):
    if isinstance(value, schema):
        return value
    try:
        return schema.model_validate(value)
    except PydanticValidationError as e:
        raise ValidationError("; ".join(err.get("msg", "invalid value") for err in e.errors()))


class ScheduleService:

    @staticmethod
    def _require_provider(db: Session, provider_id: Union[str, UUID]) -> UUID:
        provider_uuid = as_uuid(provider_id)
        if provider_uuid is None:
            raise ProviderNotFound()
        exists = db.query(Profile.id).filter(Profile.id == provider_uuid).first()
        if exists is None:
            raise ProviderNotFound()
        return provider_uuid

    @staticmethod
    def replace_weekly_rules(
            db: Session,
            provider_id: Union[str, UUID],
            rules: Iterable[Union[AvailabilityRuleIn, Mapping[str, Any]]]
    ) -> List[AvailabilityRule]:
        """
        Replace every weekly rule of the provider with ``rules``.

        All rules are validated before anything is deleted; the delete and
        the inserts share one transaction.
        """
        validated = [_coerce(AvailabilityRuleIn, rule) for rule in rules]
        provider_uuid = ScheduleService._require_provider(db, provider_id)

        try:
            db.query(AvailabilityRule).filter(
                AvailabilityRule.provider_id == provider_uuid
            ).delete(synchronize_session=False)

            created = [
                AvailabilityRule(
                    provider_id=provider_uuid,
                    day_of_week=rule.day_of_week,
                    start_time_local=rule.start_time_local,
                    end_time_local=rule.end_time_local,
                )
                for rule in validated
            ]
            db.add_all(created)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Replaced weekly rules for provider {provider_uuid} ({len(created)} rules)")
        return created

    @staticmethod
    def update_settings(
            db: Session,
            provider_id: Union[str, UUID],
            values: Union[AvailabilitySettingsIn, Mapping[str, Any]]
    ) -> AvailabilitySettings:
        """Create or update the provider's buffer and notice settings"""
        data = _coerce(AvailabilitySettingsIn, values)
        provider_uuid = ScheduleService._require_provider(db, provider_id)

        try:
            row = db.query(AvailabilitySettings).filter(
                AvailabilitySettings.provider_id == provider_uuid
            ).first()
            if row is None:
                row = AvailabilitySettings(provider_id=provider_uuid)
                db.add(row)

            row.buffer_before_minutes = data.buffer_before_minutes
            row.buffer_after_minutes = data.buffer_after_minutes
            row.min_notice_minutes = data.min_notice_minutes
            db.commit()
            db.refresh(row)
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Settings for provider {provider_uuid}: buffers "
            f"{data.buffer_before_minutes}/{data.buffer_after_minutes} min, "
            f"notice {data.min_notice_minutes} min"
        )
        return row

    @staticmethod
    def add_busy_block(
            db: Session,
            provider_id: Union[str, UUID],
            block: Union[BusyBlockIn, Mapping[str, Any]]
    ) -> BusyBlock:
        data = _coerce(BusyBlockIn, block)
        provider_uuid = ScheduleService._require_provider(db, provider_id)

        busy_block = BusyBlock(
            provider_id=provider_uuid,
            start_at=data.start_at,
            end_at=data.end_at,
            title=data.title,
        )
        try:
            db.add(busy_block)
            db.commit()
            db.refresh(busy_block)
        except Exception:
            db.rollback()
            raise

        logger.info(f"Busy block {busy_block.id} added for provider {provider_uuid}")
        return busy_block

    @staticmethod
    def remove_busy_block(
            db: Session,
            provider_id: Union[str, UUID],
            busy_block_id: Union[str, UUID]
    ) -> bool:
        """Delete one of the provider's busy blocks. False when it does not exist."""
        provider_uuid = as_uuid(provider_id)
        block_uuid = as_uuid(busy_block_id)
        if provider_uuid is None or block_uuid is None:
            return False

        try:
            deleted = db.query(BusyBlock).filter(
                BusyBlock.id == block_uuid,
                BusyBlock.provider_id == provider_uuid
            ).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise

        if deleted:
            logger.info(f"Busy block {block_uuid} removed for provider {provider_uuid}")
        return bool(deleted)
