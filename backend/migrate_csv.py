"""
Seed script: CSV exports -> database.

Reads (all optional, missing files are skipped):
    companies.csv, investors.csv, funding_rounds.csv,
    investments.csv, milestones.csv, offices.csv

Usage:
    python -m backend.migrate_csv --data-dir data/seed
    python -m backend.migrate_csv --data-dir data/seed --demo-user demo@metior.dev
"""

from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import hashlib
import logging
from pathlib import Path
from typing import Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import create_session
from backend.database import async_session, init_db
from backend.models import (
    Company,
    FundingRound,
    Investment,
    Investor,
    Milestone,
    Office,
    User,
)

logger = logging.getLogger(__name__)

FLUSH_EVERY = 500


def _read(data_dir: Path, name: str) -> Optional[pd.DataFrame]:
    path = data_dir / name
    if not path.exists():
        logger.info("  %s not found, skipping", name)
        return None
    return pd.read_csv(path, encoding="utf-8", dtype=str).fillna("")


def _date(value) -> Optional[dt.datetime]:
    """Parse a date cell; blanks and garbage become None."""
    if not value:
        return None
    parsed = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return parsed.tz_convert(None).to_pydatetime()


def _amount(value) -> float:
    try:
        return float(str(value).replace(",", "").replace("$", "").strip() or 0)
    except ValueError:
        return 0.0


def _row_id(row, *fallback_keys: str) -> str:
    rid = str(row.get("id", "")).strip()
    if rid:
        return rid
    key = "|".join(str(row.get(k, "")) for k in fallback_keys)
    return hashlib.md5(key.encode()).hexdigest()


async def _flush_progress(session: AsyncSession, idx: int, total: int, label: str):
    if (idx + 1) % FLUSH_EVERY == 0:
        await session.flush()
        logger.info("  ... %s %d / %d", label, idx + 1, total)


async def _seed_companies(session: AsyncSession, df: pd.DataFrame) -> set[str]:
    ids = set()
    for idx, row in df.iterrows():
        cid = _row_id(row, "permalink")
        if cid in ids:
            continue
        session.add(Company(
            id=cid,
            permalink=str(row.get("permalink", "")) or cid,
            name=str(row.get("name", "")),
            category_code=str(row.get("category_code", "")),
            status=str(row.get("status", "")) or "operating",
            founded_at=_date(row.get("founded_at")),
            closed_at=_date(row.get("closed_at")),
            description=str(row.get("description", "")),
            homepage_url=str(row.get("homepage_url", "")),
        ))
        ids.add(cid)
        await _flush_progress(session, idx, len(df), "companies")
    return ids


async def _seed_investors(session: AsyncSession, df: pd.DataFrame) -> set[str]:
    ids = set()
    for idx, row in df.iterrows():
        iid = _row_id(row, "permalink")
        if iid in ids:
            continue
        session.add(Investor(
            id=iid,
            permalink=str(row.get("permalink", "")) or iid,
            name=str(row.get("name", "")),
            description=str(row.get("description", "")),
            homepage_url=str(row.get("homepage_url", "")),
            founded_at=_date(row.get("founded_at")),
        ))
        ids.add(iid)
        await _flush_progress(session, idx, len(df), "investors")
    return ids


async def migrate(data_dir: str, demo_user: Optional[str] = None) -> Optional[str]:
    """Load every CSV found in ``data_dir``. Returns the demo session token, if any."""
    root = Path(data_dir)
    logger.info("Initialising database schema ...")
    await init_db()

    async with async_session() as session:
        company_ids: set[str] = set()
        investor_ids: set[str] = set()
        round_ids: set[str] = set()

        df = _read(root, "companies.csv")
        if df is not None:
            company_ids = await _seed_companies(session, df)
            logger.info("Companies: %d", len(company_ids))

        df = _read(root, "investors.csv")
        if df is not None:
            investor_ids = await _seed_investors(session, df)
            logger.info("Investors: %d", len(investor_ids))
        await session.flush()

        df = _read(root, "funding_rounds.csv")
        if df is not None:
            for idx, row in df.iterrows():
                if row.get("company_id") not in company_ids:
                    continue
                rid = _row_id(row, "company_id", "round_code", "funded_at")
                if rid in round_ids:
                    continue
                session.add(FundingRound(
                    id=rid,
                    company_id=row["company_id"],
                    round_code=str(row.get("round_code", "")),
                    raised_amount=_amount(row.get("raised_amount")),
                    raised_currency_code=str(row.get("raised_currency_code", "")) or "USD",
                    funded_at=_date(row.get("funded_at")),
                ))
                round_ids.add(rid)
                await _flush_progress(session, idx, len(df), "funding rounds")
            logger.info("Funding rounds: %d", len(round_ids))
        await session.flush()

        df = _read(root, "investments.csv")
        if df is not None:
            seen = set()
            for _, row in df.iterrows():
                key = (row.get("funding_round_id"), row.get("investor_id"))
                if key in seen or key[0] not in round_ids or key[1] not in investor_ids:
                    continue
                seen.add(key)
                session.add(Investment(funding_round_id=key[0], investor_id=key[1]))
            logger.info("Investments: %d", len(seen))

        df = _read(root, "milestones.csv")
        if df is not None:
            count = 0
            for _, row in df.iterrows():
                if row.get("company_id") not in company_ids:
                    continue
                session.add(Milestone(
                    company_id=row["company_id"],
                    milestone_code=str(row.get("milestone_code", "")),
                    description=str(row.get("description", "")),
                    milestone_at=_date(row.get("milestone_at")),
                    source_url=str(row.get("source_url", "")),
                ))
                count += 1
            logger.info("Milestones: %d", count)

        df = _read(root, "offices.csv")
        if df is not None:
            count = 0
            for _, row in df.iterrows():
                if row.get("company_id") not in company_ids:
                    continue
                session.add(Office(
                    company_id=row["company_id"],
                    description=str(row.get("description", "")),
                    city=str(row.get("city", "")),
                    country_code=str(row.get("country_code", "")),
                ))
                count += 1
            logger.info("Offices: %d", count)

        token = None
        if demo_user:
            token = await _ensure_demo_user(session, demo_user)

        await session.commit()

    logger.info("Seeding complete.")
    return token


async def _ensure_demo_user(session: AsyncSession, email: str) -> str:
    user = (
        await session.execute(select(User).where(User.email == email))
    ).scalar_one_or_none()
    if user is None:
        user = User(id=hashlib.md5(email.encode()).hexdigest(), email=email, name="Demo")
        session.add(user)
        await session.flush()
    row = await create_session(session, user.id)
    logger.info("Demo user %s session token: %s", email, row.token)
    return row.token


def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser()
    parser.add_argument("--data-dir", default="data/seed")
    parser.add_argument("--demo-user", default=None, help="email of a demo account to create")
    args = parser.parse_args()
    asyncio.run(migrate(args.data_dir, demo_user=args.demo_user))


if __name__ == "__main__":
    main()
