"""Kubernetes cluster-manager diagnostics bot."""

__version__ = "0.3.0"
