"""
Storage Module
Relational persistence for organizations, intelligence snapshots, CTAs and audiences
"""
from .database import Base, Database, get_database
from .models import Audience, CTAAnalysis, Organization, OrganizationIntelligence, as_utc, utcnow
from .repositories import (
    AudiencesRepository,
    CTARepository,
    IntelligenceRepository,
    OrganizationsRepository,
)
from .persistence import AnalysisPersistence, SavedAnalysis, intelligence_from_analysis, intelligence_payload

__all__ = [
    # Database
    "Base",
    "Database",
    "get_database",
    # Models
    "Audience",
    "CTAAnalysis",
    "Organization",
    "OrganizationIntelligence",
    "as_utc",
    "utcnow",
    # Repositories
    "AudiencesRepository",
    "CTARepository",
    "IntelligenceRepository",
    "OrganizationsRepository",
    # Facade
    "AnalysisPersistence",
    "SavedAnalysis",
    "intelligence_from_analysis",
    "intelligence_payload",
]
