"""Deployment Tracker - enrichment and signal scoring for on-chain deployments."""

__version__ = "0.1.0"
