"""Seed sample properties for demo purposes."""

import logging

from sqlalchemy.orm import Session

from landrecords.models.property import Property
from landrecords.models.user import User

logger = logging.getLogger("landrecords.seeds")

SAMPLE_PROPERTIES = [
    {
        "title_number": "TCT-T-1001",
        "registered_owner": "Alice Santos",
        "lot_number": "12",
        "survey_number": "PSD-04-0001",
        "lot_area": 350.0,
        "barangay": "San Roque",
        "city": "Antipolo",
        "province": "Rizal",
        "classification": "residential",
    },
    {
        "title_number": "TCT-T-1002",
        "registered_owner": "Benjamin Cruz",
        "lot_number": "7-B",
        "survey_number": "PSD-04-0002",
        "lot_area": 12000.0,
        "barangay": "Pinugay",
        "city": "Baras",
        "province": "Rizal",
        "classification": "agricultural",
        "encumbrances": "Real estate mortgage in favor of Land Bank",
    },
    {
        "title_number": "OCT-0-0457",
        "registered_owner": "Carmela Reyes",
        "lot_number": "3",
        "lot_area": 820.5,
        "barangay": "Poblacion",
        "city": "Tanay",
        "province": "Rizal",
        "classification": "commercial",
    },
]


def seed_sample_data(db: Session) -> int:
    """Insert sample properties owned by the first user."""
    owner = db.query(User).order_by(User.id).first()
    if not owner:
        logger.warning("No users found. Run seed_super_admin first.")
        return 0

    added = 0
    for data in SAMPLE_PROPERTIES:
        if db.query(Property).filter(Property.title_number == data["title_number"]).first():
            continue
        db.add(Property(**data, created_by_id=owner.id, updated_by_id=owner.id))
        added += 1
    db.commit()
    logger.info("Seeded %d sample propert(ies)", added)
    return added
