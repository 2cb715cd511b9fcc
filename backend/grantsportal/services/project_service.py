"""Project helpers shared by the project, file and analytics routes"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.models.project import Project

FILE_NUMBER_PREFIX = "SRG"


def format_file_number(year: int, sequence: int) -> str:
    return f"{FILE_NUMBER_PREFIX}/{year}/{sequence:04d}"


async def file_number_exists(db: AsyncSession, file_number: str) -> bool:
    result = await db.execute(
        select(Project.id).where(Project.file_number == file_number).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def generate_file_number(db: AsyncSession, sanction_year: Optional[int] = None) -> str:
    """
    Next ``SRG/<year>/<seq>`` number.

    The sequence starts after the number of projects sanctioned in that year
    and skips forward past numbers that are already taken.
    """
    year = sanction_year or datetime.utcnow().year
    count = await db.scalar(
        select(func.count(Project.id)).where(Project.budget_sanction_year == year)
    ) or 0

    sequence = count + 1
    candidate = format_file_number(year, sequence)
    while await file_number_exists(db, candidate):
        sequence += 1
        candidate = format_file_number(year, sequence)
    return candidate


def legacy_investigator(investigators) -> dict:
    """First entry of an investigator list, mirrored into the legacy pi/co_pi fields"""
    return dict(investigators[0]) if investigators else {}
