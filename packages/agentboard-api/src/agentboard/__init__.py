"""agentboard: aggregation, health tracking and alerting for AI agent sessions."""

__version__ = "0.9.3"
