"""Push notification dispatch worker.

Claims notification intents from the shared queue table, delivers them
through Firebase Cloud Messaging and reconciles queue and token state.
"""

__version__ = "1.0.0"
