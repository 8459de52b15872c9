"""Custom exception hierarchy for the enrichment engine."""


class FeedEnrichError(Exception):
    """Base exception for all feedenrich errors."""


class InvalidRecordError(FeedEnrichError):
    """Record payload could not be parsed as a field map."""


class OracleError(FeedEnrichError):
    """Error talking to the reasoning backend."""


class GenerationError(OracleError):
    """Proposal generation failed or returned an unusable response."""


class EvidenceCollectionError(FeedEnrichError):
    """Error while gathering visual or web evidence."""


class EvidenceNotFoundError(FeedEnrichError):
    """No evidence with the requested id exists in the registry."""


class ProposalStateError(FeedEnrichError):
    """Illegal proposal status transition."""


class ConfigurationError(FeedEnrichError):
    """Error in system configuration."""


class PipelineCancelled(FeedEnrichError):
    """The run was cancelled before it could finish."""
