"""Change history service: read side of the per-field history."""

import math
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from landrecords.models.change_history import ChangeHistory, ChangeType
from landrecords.models.user import User


class ChangeHistoryService:
    """Queries over ``ChangeHistory``. There is no write path here."""

    @staticmethod
    def list_for_entity(db: Session, property_id: int, limit: int = 100) -> List[ChangeHistory]:
        return (
            db.query(ChangeHistory)
            .filter(ChangeHistory.property_id == property_id)
            .order_by(ChangeHistory.changed_at.desc(), ChangeHistory.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def query(
        db: Session,
        search: Optional[str] = None,
        change_type: Optional[ChangeType] = None,
        field_name: Optional[str] = None,
        actor_id: Optional[int] = None,
        property_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """Filtered, paginated history, newest first."""
        query = db.query(ChangeHistory)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    ChangeHistory.field_name.ilike(pattern),
                    ChangeHistory.old_value.ilike(pattern),
                    ChangeHistory.new_value.ilike(pattern),
                    ChangeHistory.reason.ilike(pattern),
                )
            )
        if change_type:
            query = query.filter(ChangeHistory.change_type == ChangeType(change_type))
        if field_name:
            query = query.filter(ChangeHistory.field_name == field_name)
        if actor_id:
            query = query.filter(ChangeHistory.changed_by_id == actor_id)
        if property_id:
            query = query.filter(ChangeHistory.property_id == property_id)
        if date_from:
            query = query.filter(ChangeHistory.changed_at >= date_from)
        if date_to:
            if date_to.time() == time.min:
                date_to = datetime.combine(date_to.date(), time.max)
            query = query.filter(ChangeHistory.changed_at <= date_to)

        total = query.count()
        items = (
            query.order_by(ChangeHistory.changed_at.desc(), ChangeHistory.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "items": items,
            "total": total,
            "total_pages": math.ceil(total / page_size) if page_size else 0,
            "page": page,
            "page_size": page_size,
        }

    @staticmethod
    def get_stats(db: Session, as_of: Optional[datetime] = None) -> Dict[str, Any]:
        """Totals for this month and week plus the most active actors and fields."""
        as_of = as_of or datetime.now(timezone.utc).replace(tzinfo=None)
        month_start = datetime(as_of.year, as_of.month, 1)
        week_start = datetime.combine((as_of - timedelta(days=as_of.weekday())).date(), time.min)

        total = db.query(func.count(ChangeHistory.id)).scalar() or 0
        this_month = (
            db.query(func.count(ChangeHistory.id)).filter(ChangeHistory.changed_at >= month_start).scalar() or 0
        )
        this_week = (
            db.query(func.count(ChangeHistory.id)).filter(ChangeHistory.changed_at >= week_start).scalar() or 0
        )

        count_col = func.count(ChangeHistory.id).label("count")
        top_users = [
            {"user_id": uid, "email": email, "count": count}
            for uid, email, count in db.query(ChangeHistory.changed_by_id, User.email, count_col)
            .join(User, User.id == ChangeHistory.changed_by_id)
            .group_by(ChangeHistory.changed_by_id, User.email)
            .order_by(count_col.desc(), ChangeHistory.changed_by_id)
            .limit(5)
            .all()
        ]
        top_fields = [
            {"field_name": name, "count": count}
            for name, count in db.query(ChangeHistory.field_name, count_col)
            .group_by(ChangeHistory.field_name)
            .order_by(count_col.desc(), ChangeHistory.field_name)
            .limit(10)
            .all()
        ]
        return {
            "total_changes": total,
            "changes_this_month": this_month,
            "changes_this_week": this_week,
            "top_users": top_users,
            "top_fields": top_fields,
        }


change_history_service = ChangeHistoryService()
