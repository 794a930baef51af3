"""Migration state and per-domain outcome tracking."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from launcher_bootstrap.database import keys
from launcher_bootstrap.database.store import KeyValueStore
from launcher_bootstrap.utils.logging import get_logger


class MigrationPhase(Enum):
    """Lifecycle of the one-time SQLite migration."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class MigrationDomain(Enum):
    """Independent data domains moved out of SQLite."""
    GAMES = "games"
    USER_PREFERENCES = "user_preferences"
    ACHIEVEMENTS = "achievements"
    USER = "user"


class DomainStatus(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DomainOutcome:
    """Result of migrating one domain."""
    domain: MigrationDomain
    status: DomainStatus = DomainStatus.PENDING
    error: Optional[str] = None


@dataclass
class MigrationReport:
    """Tracks the migration phase and what happened to each domain."""
    phase: MigrationPhase = MigrationPhase.NOT_STARTED
    outcomes: Dict[MigrationDomain, DomainOutcome] = field(default_factory=dict)
    skipped: bool = False
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    def start(self, domains: List[MigrationDomain]) -> None:
        """Move to IN_PROGRESS with every domain pending.

        Raises:
            RuntimeError: If the migration was already started
        """
        if self.phase is not MigrationPhase.NOT_STARTED:
            raise RuntimeError(f"Cannot start migration in phase {self.phase.value}")
        self.phase = MigrationPhase.IN_PROGRESS
        self.started_at = _now()
        self.outcomes = {d: DomainOutcome(domain=d) for d in domains}

    def carry_over(self, previous: "MigrationReport") -> None:
        """Keep the outcomes of domains this run does not touch."""
        for domain, outcome in previous.outcomes.items():
            self.outcomes.setdefault(domain, outcome)

    def record_success(self, domain: MigrationDomain) -> None:
        self.outcomes[domain] = DomainOutcome(domain=domain, status=DomainStatus.SUCCEEDED)

    def record_skipped(self, domain: MigrationDomain) -> None:
        self.outcomes[domain] = DomainOutcome(domain=domain, status=DomainStatus.SKIPPED)

    def record_failure(self, domain: MigrationDomain, error: BaseException) -> None:
        self.outcomes[domain] = DomainOutcome(
            domain=domain,
            status=DomainStatus.FAILED,
            error=f"{type(error).__name__}: {error}",
        )

    def finish(self) -> None:
        """Move to DONE, whatever the individual domain outcomes were."""
        self.phase = MigrationPhase.DONE
        self.finished_at = _now()

    @property
    def failed_domains(self) -> List[MigrationDomain]:
        return [o.domain for o in self.outcomes.values() if o.status is DomainStatus.FAILED]

    @property
    def succeeded_domains(self) -> List[MigrationDomain]:
        return [o.domain for o in self.outcomes.values() if o.status is DomainStatus.SUCCEEDED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "domains": {
                o.domain.value: {"status": o.status.value, "error": o.error}
                for o in self.outcomes.values()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationReport":
        logger = get_logger(__name__)

        outcomes = {}
        for name, raw in data.get("domains", {}).items():
            try:
                domain = MigrationDomain(name)
                status = DomainStatus(raw.get("status", "pending"))
            except ValueError:
                logger.warning(f"Unknown domain entry in migration report: {name}")
                continue
            outcomes[domain] = DomainOutcome(domain=domain, status=status, error=raw.get("error"))

        return cls(
            phase=MigrationPhase(data.get("phase", MigrationPhase.NOT_STARTED.value)),
            outcomes=outcomes,
            started_at=data.get("startedAt"),
            finished_at=data.get("finishedAt"),
        )

    async def save(self, store: KeyValueStore) -> None:
        """Persist the report next to the completion flag."""
        await store.put(keys.SQLITE_MIGRATION_REPORT, self.to_dict(), value_encoding="json")


async def read_migration_report(store: KeyValueStore) -> Optional[MigrationReport]:
    """Load the report of the last migration run.

    Returns:
        The report, or None if migration never ran on this store
    """
    data = await store.get(keys.SQLITE_MIGRATION_REPORT, value_encoding="json")
    if data is None:
        return None
    return MigrationReport.from_dict(data)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
