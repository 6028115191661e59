# src/vecinu/scripts/seed.py
"""Insert or refresh the pilot city's neighborhoods."""
from __future__ import annotations

import argparse
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from vecinu.core.logging import configure_logging
from vecinu.core.settings import settings
from vecinu.db.session import SessionLocal, create_tables
from vecinu.models import Neighborhood

logger = logging.getLogger(__name__)

# (slug, name, description)
TIMISOARA_NEIGHBORHOODS: tuple[tuple[str, str, str], ...] = (
    ("cetate", "Cetate", "Centrul istoric al orașului"),
    ("fabric", "Fabric", "Cartierul dintre Bega și Parcul Regina Maria"),
    ("iosefin", "Iosefin", "Cartier istoric în sud-vestul orașului"),
    ("elisabetin", "Elisabetin", "Cartier cu vile vechi, la sud de centru"),
    ("girocului", "Girocului", "Zona de blocuri din sudul orașului"),
    ("mehala", "Mehala", "Cartier în nord-vestul orașului"),
    ("complexul-studentesc", "Complexul Studențesc", "Zona căminelor universitare"),
    ("circumvalatiunii", "Circumvalațiunii", "Cartier de blocuri din vestul orașului"),
    ("plopi", "Plopi", "Cartier în nordul orașului"),
)


def seed_neighborhoods(db: Session, city: str = settings.pilot_city) -> int:
    """Upsert the neighborhoods by slug.

    Returns:
        Number of neighborhoods created.
    """
    created = 0
    for slug, name, description in TIMISOARA_NEIGHBORHOODS:
        neighborhood = db.scalar(select(Neighborhood).where(Neighborhood.slug == slug))
        if neighborhood is None:
            db.add(Neighborhood(slug=slug, name=name, city=city, description=description))
            created += 1
        else:
            neighborhood.name = name
            neighborhood.city = city
            neighborhood.description = description
            neighborhood.is_active = True
    db.commit()
    return created


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="create missing tables first (local SQLite development)",
    )
    args = parser.parse_args(argv)

    configure_logging()
    if args.create_tables:
        create_tables()
    with SessionLocal() as db:
        created = seed_neighborhoods(db)
    logger.info(
        "Seeded %d new neighborhoods (%d total)",
        created,
        len(TIMISOARA_NEIGHBORHOODS),
    )


if __name__ == "__main__":
    main()
