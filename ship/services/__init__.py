"""Application services for the ship CLI.

Services implement the release workflow, coordinating between the domain
layer (core/) and infrastructure (git/, platform/).
"""

from ship.services.release.orchestrator import ReleaseRequest, ReleaseServices, run_release

__all__ = [
    "ReleaseRequest",
    "ReleaseServices",
    "run_release",
]
