"""CRC dashboard: local user/lead/project store kept in sync across tabs."""

from crc_dashboard.services.repository import DomainRepository
from crc_dashboard.services.workspace import Workspace, open_workspace

__all__ = ["DomainRepository", "Workspace", "open_workspace"]
