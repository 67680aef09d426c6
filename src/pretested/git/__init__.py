"""Repository access for integration."""

from pretested.git.gateway import GitGateway, VcsGateway

__all__ = ["GitGateway", "VcsGateway"]
