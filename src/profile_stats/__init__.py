"""profile-stats: reconciled GitHub activity snapshots for profile cards."""

__version__ = "0.1.0"
