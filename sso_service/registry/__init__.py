"""
Service discovery registration.
"""
from sso_service.registry.eureka import EurekaRegistration

__all__ = ["EurekaRegistration"]
