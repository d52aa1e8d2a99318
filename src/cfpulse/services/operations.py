"""Resolves organization/space targets to reusable CLI sessions."""

import threading
from typing import Callable, Dict, List, Optional, Set

from cfpulse.models import TargetContext


class OperationsCache:
    """Caches one session per target, plus a default session that can be retargeted.

    Sessions are expensive to build (login and targeting), so each distinct
    target is constructed at most once until it is invalidated. Concurrent
    first use of the same target resolves to a single construction, and
    lookups of cached targets never wait on a construction in progress.
    """

    def __init__(
        self,
        session_factory: Callable[[TargetContext], object],
        default_organization: Optional[str],
        default_space: Optional[str],
        logger,
    ):
        self.session_factory = session_factory
        self.config_default_organization = default_organization
        self.config_default_space = default_space
        self.logger = logger

        self._handles: Dict[TargetContext, object] = {}
        self._key_locks: Dict[TargetContext, threading.Lock] = {}
        self._handles_lock = threading.Lock()

        # Writers hold the lock; readers take one reference to the immutable pair.
        self._default_lock = threading.RLock()
        self._default_handle = None
        self._current_target: Optional[TargetContext] = None

        self._created: List[object] = []
        self._created_lock = threading.Lock()

    @property
    def default_organization(self) -> Optional[str]:
        return self.default_context.organization

    @property
    def default_space(self) -> Optional[str]:
        return self.default_context.space

    @property
    def default_context(self) -> TargetContext:
        current = self._current_target
        if current is not None:
            return current
        return TargetContext(self.config_default_organization, self.config_default_space)

    def resolve(self, context: Optional[TargetContext] = None):
        if context is None or context == self.default_context:
            return self._get_default()

        handle = self._handles.get(context)
        if handle is not None:
            return handle

        with self._handles_lock:
            key_lock = self._key_locks.setdefault(context, threading.Lock())

        with key_lock:
            handle = self._handles.get(context)
            if handle is None:
                self.logger.debug("Creating new session for %s", context)
                handle = self._construct(context)
                with self._handles_lock:
                    self._handles[context] = handle
            return handle

    def for_target(self, organization: Optional[str] = None, space: Optional[str] = None):
        if organization is None and space is None:
            return self.resolve()
        return self.resolve(self.context_for(organization, space))

    def context_for(self, organization: Optional[str], space: Optional[str]) -> Optional[TargetContext]:
        """Fills an omitted organization or space from the current default."""
        if organization is None and space is None:
            return None
        default = self.default_context
        return TargetContext(
            organization if organization is not None else default.organization,
            space if space is not None else default.space,
        )

    def _get_default(self):
        handle = self._default_handle
        if handle is not None:
            return handle

        with self._default_lock:
            if self._default_handle is None:
                context = self.default_context
                self.logger.debug("Creating default session for %s", context)
                self._default_handle = self._construct(context)
            return self._default_handle

    def _construct(self, context: TargetContext):
        handle = self.session_factory(context)
        with self._created_lock:
            self._created.append(handle)
        return handle

    def set_default_target(self, organization: str, space: str):
        self.logger.info("Setting default target: org=%s, space=%s", organization, space)
        with self._default_lock:
            self._current_target = TargetContext(organization, space)
            self._default_handle = None

    def clear_default_target(self):
        self.logger.info("Clearing default target, reverting to configuration defaults")
        with self._default_lock:
            self._current_target = None
            self._default_handle = None

    def clear_cache(self):
        # Key locks are kept so a construction in progress stays single-flight.
        with self._handles_lock:
            self.logger.info("Clearing session cache containing %s entries", len(self._handles))
            self._handles.clear()
        with self._default_lock:
            self._default_handle = None

    def cached_contexts(self) -> Set[TargetContext]:
        with self._handles_lock:
            return set(self._handles)

    def cache_size(self) -> int:
        with self._handles_lock:
            return len(self._handles)

    def close(self):
        """Releases every session ever built by this cache."""
        self.clear_cache()
        with self._created_lock:
            created, self._created = self._created, []
        for handle in created:
            close = getattr(handle, "close", None)
            if close is not None:
                close()
