"""Target organization/space management."""

from cfpulse.errors import TargetError
from cfpulse.errors_catalog import actionable_error
from cfpulse.models import TargetContext, TargetInfo


class CfTargetService:
    """Sets, reports and clears the default organization/space."""

    def __init__(self, operations, logger):
        self.operations = operations
        self.logger = logger

    def validate(self, organization: str, space: str):
        """Builds (or reuses) a session for the pair, which targets it on the platform."""
        try:
            return self.operations.resolve(TargetContext(organization, space))
        except Exception as exc:
            self.logger.error(
                "Failed to target org=%s, space=%s: %s", organization, space, exc
            )
            raise TargetError(
                actionable_error("target_failed", organization=organization, space=space)
                + f" Cause: {exc}"
            ) from exc

    def target(self, organization: str, space: str) -> TargetInfo:
        if not organization or not space:
            raise TargetError("Both organization and space are required to set a target.")

        self.logger.info("Setting CF target: org=%s, space=%s", organization, space)
        self.validate(organization, space)
        self.operations.set_default_target(organization, space)
        self.logger.info("Successfully set CF target: org=%s, space=%s", organization, space)
        return self.current_target()

    def current_target(self) -> TargetInfo:
        info = TargetInfo(self.operations.default_organization, self.operations.default_space)
        self.logger.debug("Current CF target: %s", info)
        return info

    def clear_target(self) -> TargetInfo:
        self.logger.info("Clearing CF target, reverting to configuration defaults")
        self.operations.clear_default_target()
        return self.current_target()
