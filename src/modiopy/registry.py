"""
modiopy.registry
----------------

Registration surface for the outer application.

Each ProviderFactory declares an id, a predicate telling whether it can handle
a reference string, the parameters a user must supply (e.g. an OAuth token)
and a constructor taking those parameters. Two factories are registered: the
official mod.io API ("modio") and the mods.swiss.dev mirror ("swissdev").
Both build a ModioProvider; they differ only in the backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Type

from .backends import MirrorApi, ModioApi
from .capability import RemoteRepository
from .exceptions import ConfigurationError
from .provider import ModioProvider
from .reference import DEFAULT_CODEC

MODIO_FACTORY_ID = "modio"
SWISS_DEV_FACTORY_ID = "swissdev"


@dataclass(frozen=True)
class ProviderParameter:
    """A value the user has to configure before a provider can be built."""
    id: str
    name: str
    description: str
    link: Optional[str] = None


@dataclass(frozen=True)
class ProviderFactory:
    id: str
    new: Callable[[Dict[str, str]], ModioProvider]
    can_provide: Callable[[str], bool]
    parameters: List[ProviderParameter] = field(default_factory=list)

    def create(self, parameters: Optional[Dict[str, str]] = None) -> ModioProvider:
        parameters = dict(parameters or {})
        missing = [p.id for p in self.parameters if not parameters.get(p.id)]
        if missing:
            raise ConfigurationError(f"provider {self.id!r} is missing parameters: {', '.join(missing)}")
        return self.new(parameters)


_FACTORIES: Dict[str, ProviderFactory] = {}


def register_factory(factory: ProviderFactory) -> ProviderFactory:
    if factory.id in _FACTORIES:
        raise ValueError(f"provider factory {factory.id!r} already registered")
    _FACTORIES[factory.id] = factory
    return factory


def get_factory(factory_id: str) -> ProviderFactory:
    try:
        return _FACTORIES[factory_id]
    except KeyError:
        raise ConfigurationError(f"unknown provider {factory_id!r}") from None


def factories() -> List[ProviderFactory]:
    return list(_FACTORIES.values())


def find_factories(url: str) -> List[ProviderFactory]:
    """Factories able to handle `url`, in registration order."""
    return [f for f in _FACTORIES.values() if f.can_provide(url)]


def _provider_factory(backend: Type[RemoteRepository]) -> Callable[[Dict[str, str]], ModioProvider]:
    def new(parameters: Dict[str, str]) -> ModioProvider:
        return ModioProvider(backend.with_parameters(parameters))
    new.__name__ = f"new_{backend.__name__}_provider"
    return new


register_factory(ProviderFactory(
    id=MODIO_FACTORY_ID,
    new=_provider_factory(ModioApi),
    can_provide=DEFAULT_CODEC.matches,
    parameters=[
        ProviderParameter(
            id="oauth",
            name="OAuth Token",
            description="mod.io OAuth token",
            link="https://mod.io/me/access",
        ),
    ],
))

register_factory(ProviderFactory(
    id=SWISS_DEV_FACTORY_ID,
    new=_provider_factory(MirrorApi),
    can_provide=DEFAULT_CODEC.matches,
))
