# vaultnote/infra/health.py

from dataclasses import asdict, dataclass

from sqlalchemy.engine import Engine

from vaultnote.core.config import Settings
from vaultnote.infra import database


@dataclass
class HealthReport:
    database: bool
    encryption_key: bool

    @property
    def ok(self) -> bool:
        return self.database and self.encryption_key

    def as_dict(self) -> dict:
        return {"status": "ok" if self.ok else "degraded", "checks": asdict(self)}


def check_requirements(engine: Engine, settings: Settings) -> HealthReport:
    """Environment self-check: database reachable, key configured"""
    return HealthReport(
        database=database.test_connection(engine),
        encryption_key=bool(settings.encrypt_key),
    )
