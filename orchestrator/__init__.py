# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Deployment lifecycle
# PURPOSE: Coordinate login, provisioning, packaging and upload
# CREATED: 12 OCT 2026
# ============================================================================
"""
Orchestrator Module

Drives the deployment lifecycle of one service.

Usage:
    from orchestrator import DeploymentOrchestrator

    orchestrator = DeploymentOrchestrator(manifest)
    await orchestrator.deploy()
"""

from .deployment import (
    DeploymentContext,
    DeploymentError,
    DeploymentOrchestrator,
    DeploymentResult,
)

__all__ = [
    "DeploymentContext",
    "DeploymentError",
    "DeploymentOrchestrator",
    "DeploymentResult",
]
