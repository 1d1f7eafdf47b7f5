"""Domain enumerations for the personal context learning engine."""

from enum import StrEnum


class ContactCategory(StrEnum):
    """Relationship categories a contact can be classified into."""

    FAMILY = "family"
    CLOSE_FRIENDS = "close_friends"
    WORK_COLLEAGUES = "work_colleagues"
    CLIENTS_CUSTOMERS = "clients_customers"
    EXECUTIVES_BOSSES = "executives_bosses"
    VENDORS_SERVICE_PROVIDERS = "vendors_service_providers"
    UNKNOWN_COLD_OUTREACH = "unknown_cold_outreach"
    ACADEMIC_CONTACTS = "academic_contacts"
    COMMUNITY_ORGANIZATION = "community_organization"
    GOVERNMENT_OFFICIAL = "government_official"


class ThreadCategory(StrEnum):
    """Heuristic category assigned to a discovered thread."""

    WORK = "work"
    PERSONAL = "personal"
    COMMERCIAL = "commercial"
    AUTOMATED = "automated"
    UNKNOWN = "unknown"


class ManagementLevel(StrEnum):
    """Inferred seniority of the mailbox owner."""

    INDIVIDUAL = "individual"
    TEAM_LEAD = "team_lead"
    MANAGER = "manager"
    DIRECTOR = "director"
    EXECUTIVE = "executive"


class FormalityLevel(StrEnum):
    """Formality of a contextual response."""

    VERY_FORMAL = "very_formal"
    FORMAL = "formal"
    NEUTRAL = "neutral"
    CASUAL = "casual"
    VERY_CASUAL = "very_casual"


class ExpertiseLevel(StrEnum):
    """Depth of knowledge in a domain, ordered from lowest to highest."""

    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        """Position of this level in the novice < ... < expert ordering."""
        return list(ExpertiseLevel).index(self)


class CommunicationInsightType(StrEnum):
    TONE = "tone"
    FORMALITY = "formality"
    RESPONSE_PATTERN = "response_pattern"
    STYLE_VARIATION = "style_variation"


class ProfessionalInsightType(StrEnum):
    ROLE = "role"
    COMPANY = "company"
    DEPARTMENT = "department"
    EXPERTISE = "expertise"
    RESPONSIBILITY = "responsibility"
    AUTHORITY = "authority"
    MEETING_PATTERN = "meeting_pattern"
    WORKING_HOURS = "working_hours"


class PersonalInsightType(StrEnum):
    PREFERENCE = "preference"
    INTEREST = "interest"
    SCHEDULE = "schedule"
    DECISION_STYLE = "decision_style"
    COMMUNICATION_PREFERENCE = "communication_preference"


class CommunicationFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    OCCASIONAL = "occasional"
    RARE = "rare"


class LearningPhase(StrEnum):
    """Phases of a single learning run."""

    DISCOVERY = "discovery"
    ANALYSIS = "analysis"
    LEARNING = "learning"
    COMPLETE = "complete"
    ERROR = "error"


class LearningStatus(StrEnum):
    """Coarse status of the learning progress record."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class TimeRange(StrEnum):
    """How far back thread discovery looks."""

    LAST_MONTH = "last_month"
    LAST_3_MONTHS = "last_3months"
    LAST_6_MONTHS = "last_6months"
    LAST_YEAR = "last_year"
    LAST_2_YEARS = "last_2years"
    LAST_3_YEARS = "last_3years"
    LAST_5_YEARS = "last_5years"
    ALL_TIME = "all_time"


class AnalysisDepth(StrEnum):
    """How many threads discovery is allowed to hand to the analyzer."""

    BASIC = "basic"
    STANDARD = "standard"
    COMPREHENSIVE = "comprehensive"


class LearningSource(StrEnum):
    HISTORICAL_ANALYSIS = "historical_analysis"
    REAL_TIME_LEARNING = "real_time_learning"
    MANUAL_INPUT = "manual_input"
    HYBRID = "hybrid"


# Maximum number of candidate threads fetched per analysis depth
DEPTH_THREAD_LIMITS: dict[AnalysisDepth, int] = {
    AnalysisDepth.BASIC: 50,
    AnalysisDepth.STANDARD: 150,
    AnalysisDepth.COMPREHENSIVE: 400,
}
