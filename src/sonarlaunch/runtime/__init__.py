"""Java runtime provisioning and validation."""

from sonarlaunch.runtime.resolver import (
    RuntimeResolution,
    RuntimeResolver,
    SYSTEM_JAVA,
    supports_provisioning,
)

__all__ = ["RuntimeResolution", "RuntimeResolver", "SYSTEM_JAVA", "supports_provisioning"]
