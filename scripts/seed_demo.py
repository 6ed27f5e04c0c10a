from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from gapwatch.domain.models import HrdPacketGap, ReplayStatus, Variable, VmuPacketGap
from gapwatch.persistence.db import SessionLocal


@dataclass(frozen=True)
class DemoStage:
    # Ordinals drive the lifecycle: lowest is initial, highest is cancelled.
    name: str
    workflow: int


@dataclass(frozen=True)
class DemoVariable:
    name: str
    value: str
    allowed: tuple[str, ...]
    hazardous: bool = False


DEMO_STAGES = (
    DemoStage("pending", 0),
    DemoStage("processing", 1),
    DemoStage("completed", 2),
    DemoStage("cancelled", 3),
)

DEMO_VARIABLES = (
    DemoVariable("replay.enabled", "true", ("true", "false"), hazardous=True),
    DemoVariable("replay.batch", "16", ("8", "16", "32")),
    DemoVariable("archive.mode", "auto", ("auto", "manual")),
)

DEMO_CHANNELS = ("vic1", "vic2", "lrsd")
DEMO_SOURCES = ((1, "realtime"), (2, "playback"))


def build_demo_gaps(now: datetime) -> tuple[list[HrdPacketGap], list[VmuPacketGap]]:
    # Spread gaps over the last few days so list and stats endpoints have data.
    hrd: list[HrdPacketGap] = []
    vmu: list[VmuPacketGap] = []
    for index in range(12):
        detected = now - timedelta(hours=6 * index)
        last = detected - timedelta(seconds=30)
        hrd.append(
            HrdPacketGap(
                timestamp=detected,
                last_timestamp=last,
                last_sequence_count=1000 + index * 10,
                next_timestamp=last + timedelta(seconds=2),
                next_sequence_count=1000 + index * 10 + 5,
                channel=DEMO_CHANNELS[index % len(DEMO_CHANNELS)],
                corrupted=index % 5 == 0,
                completed=index % 3 == 0,
            )
        )
        source, phase = DEMO_SOURCES[index % len(DEMO_SOURCES)]
        vmu.append(
            VmuPacketGap(
                timestamp=detected,
                last_timestamp=last,
                last_sequence_count=200 + index,
                next_timestamp=last + timedelta(seconds=1),
                next_sequence_count=200 + index + 3,
                source=source,
                phase=phase,
                corrupted=False,
                completed=index % 4 == 0,
            )
        )
    return hrd, vmu


async def seed_demo() -> int:
    # Use the shared async session factory so env config matches the API process.
    async with SessionLocal() as session:
        existing = await session.execute(select(ReplayStatus.name))
        known = set(existing.scalars())
        session.add_all(
            ReplayStatus(name=stage.name, workflow=stage.workflow)
            for stage in DEMO_STAGES
            if stage.name not in known
        )

        existing = await session.execute(select(Variable.name))
        known = set(existing.scalars())
        session.add_all(
            Variable(
                name=variable.name,
                value=variable.value,
                range_json=list(variable.allowed),
                hazardous=variable.hazardous,
            )
            for variable in DEMO_VARIABLES
            if variable.name not in known
        )

        existing = await session.execute(select(HrdPacketGap.id).limit(1))
        if existing.scalar_one_or_none() is not None:
            await session.commit()
            print("Demo gaps already seeded; skipping.")
            return 0

        hrd, vmu = build_demo_gaps(datetime.now(timezone.utc))
        session.add_all(hrd)
        session.add_all(vmu)
        await session.commit()
        print(f"Seeded {len(hrd)} HRD and {len(vmu)} VMU demo gaps.")
        return 0


def main() -> int:
    # Surface clear failures and exit non-zero so CI/dev scripts can detect issues.
    try:
        return asyncio.run(seed_demo())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_demo failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
