"""
StandardEnvironment

Property lookup and profiles for an application context.

Properties are looked up in an explicit mapping first, then in the process
environment. Environment variables are also found through their relaxed
name: ``app.db-url`` matches ``APP_DB_URL``.
"""

import os
from typing import Any, Iterable, List, Mapping, MutableMapping, Optional

ACTIVE_PROFILES_PROPERTY = "beanforge.profiles.active"
DEFAULT_PROFILE = "default"


class StandardEnvironment:
    """Layered property source with active profiles.

    Attributes:
        properties: Explicit properties, consulted before the process environment

    Example::

        env = StandardEnvironment({"app.name": "shop"}, active_profiles=["dev"])
        env.get_property("app.name")        # "shop"
        env.get_property("home")            # value of $HOME
        env.accepts_profiles("dev", "test") # True
    """

    def __init__(
        self,
        properties: Optional[Mapping[str, Any]] = None,
        active_profiles: Optional[Iterable[str]] = None,
        use_os_environ: bool = True,
    ):
        self.properties: MutableMapping[str, Any] = dict(properties or {})
        self._environ: Mapping[str, str] = os.environ if use_os_environ else {}
        self._active_profiles: Optional[List[str]] = (
            list(active_profiles) if active_profiles is not None else None
        )

    def contains_property(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def get_property(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING else value

    def get_required_property(self, key: str) -> Any:
        """Return the property ``key``.

        Raises:
            KeyError: When the property is not defined in any layer
        """
        value = self._lookup(key)
        if value is _MISSING:
            raise KeyError(f"Required property '{key}' not found")
        return value

    def set_property(self, key: str, value: Any) -> None:
        self.properties[key] = value

    def _lookup(self, key: str) -> Any:
        if key in self.properties:
            return self.properties[key]
        for candidate in (key, _relaxed_name(key)):
            if candidate in self._environ:
                return self._environ[candidate]
        return _MISSING

    # Profiles

    @property
    def active_profiles(self) -> List[str]:
        if self._active_profiles is None:
            value = self.get_property(ACTIVE_PROFILES_PROPERTY, "")
            self._active_profiles = [p.strip() for p in str(value).split(",") if p.strip()]
        return list(self._active_profiles)

    def set_active_profiles(self, *profiles: str) -> None:
        self._active_profiles = list(profiles)

    def add_active_profile(self, profile: str) -> None:
        profiles = self.active_profiles
        if profile not in profiles:
            profiles.append(profile)
        self._active_profiles = profiles

    def accepts_profiles(self, *profiles: str) -> bool:
        """Whether any of ``profiles`` is active. ``"!p"`` matches when ``p`` is not."""
        active = self.active_profiles or [DEFAULT_PROFILE]
        for profile in profiles:
            if profile.startswith("!"):
                if profile[1:] not in active:
                    return True
            elif profile in active:
                return True
        return False

    def __repr__(self) -> str:
        return f"StandardEnvironment(active_profiles={self.active_profiles})"


_MISSING = object()


def _relaxed_name(key: str) -> str:
    return key.replace(".", "_").replace("-", "_").upper()
