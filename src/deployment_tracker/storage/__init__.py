"""Storage layer - Database schemas and repositories."""

from deployment_tracker.storage.database import (
    DatabaseManager,
    create_async_db_engine,
    create_async_session_factory,
    ensure_sqlite_directory,
    init_async_db,
)
from deployment_tracker.storage.models import (
    AddressResolutionModel,
    Base,
    DeploymentModel,
    EcosystemMetricsModel,
    MilestoneModel,
    ProjectMetricsModel,
)
from deployment_tracker.storage.repos import (
    AddressResolutionDTO,
    AddressResolutionRepository,
    DeploymentDTO,
    DeploymentRepository,
    EcosystemMetricsDTO,
    EcosystemMetricsRepository,
    MilestoneDTO,
    MilestoneRepository,
    ProjectMetricsDTO,
    ProjectMetricsRepository,
)

__all__ = [
    "AddressResolutionDTO",
    "AddressResolutionModel",
    "AddressResolutionRepository",
    "Base",
    "DatabaseManager",
    "DeploymentDTO",
    "DeploymentModel",
    "DeploymentRepository",
    "EcosystemMetricsDTO",
    "EcosystemMetricsModel",
    "EcosystemMetricsRepository",
    "MilestoneDTO",
    "MilestoneModel",
    "MilestoneRepository",
    "ProjectMetricsDTO",
    "ProjectMetricsModel",
    "ProjectMetricsRepository",
    "create_async_db_engine",
    "create_async_session_factory",
    "ensure_sqlite_directory",
    "init_async_db",
]
