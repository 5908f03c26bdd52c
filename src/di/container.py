"""
Dependency injection container for the diagnostics services.

Services are composed once at process start and handed to collaborators by
reference. ``ApplicationContainer.initialize`` opens them and ``shutdown``
closes them; there are no module-level singletons.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict

import structlog

from src import __version__
from src.config.settings import Settings
from src.ui.presenter import Presenter

logger = structlog.get_logger(__name__)


class Provider(ABC):
    """Base provider class for dependency injection."""

    @abstractmethod
    def provide(self, container: "DIContainer") -> Any:
        """Provide the dependency."""


class FactoryProvider(Provider):
    """Factory provider that creates new instances."""

    def __init__(self, factory: Callable, *args, **kwargs):
        self.factory = factory
        self.args = args
        self.kwargs = kwargs

    def _resolve(self, container: "DIContainer"):
        args = [arg.provide(container) if isinstance(arg, Provider) else arg for arg in self.args]
        kwargs = {
            key: value.provide(container) if isinstance(value, Provider) else value
            for key, value in self.kwargs.items()
        }
        return args, kwargs

    def provide(self, container: "DIContainer") -> Any:
        args, kwargs = self._resolve(container)
        return self.factory(*args, **kwargs)


class SingletonProvider(FactoryProvider):
    """Provider that creates its instance once and then caches it."""

    def __init__(self, factory: Callable, *args, **kwargs):
        super().__init__(factory, *args, **kwargs)
        self._instance = None
        self._created = False

    def provide(self, container: "DIContainer") -> Any:
        if not self._created:
            self._instance = super().provide(container)
            self._created = True
        return self._instance


class ValueProvider(Provider):
    """Value provider that returns static values."""

    def __init__(self, value: Any):
        self.value = value

    def provide(self, container: "DIContainer") -> Any:
        return self.value


class DIContainer:
    """Lightweight named-provider container."""

    def __init__(self):
        self._providers: Dict[str, Provider] = {}

    def register(self, name: str, provider: Provider):
        self._providers[name] = provider
        logger.debug("Provider registered", name=name, provider_type=type(provider).__name__)

    def factory(self, name: str, factory: Callable, *args, **kwargs):
        self.register(name, FactoryProvider(factory, *args, **kwargs))

    def singleton(self, name: str, factory: Callable, *args, **kwargs):
        self.register(name, SingletonProvider(factory, *args, **kwargs))

    def value(self, name: str, value: Any):
        self.register(name, ValueProvider(value))

    def get(self, name: str) -> Any:
        if name not in self._providers:
            raise KeyError(f"Provider '{name}' not found")
        return self._providers[name].provide(self)

    def has(self, name: str) -> bool:
        return name in self._providers


class ApplicationContainer:
    """Composes the error pipeline: sink, metrics, throttle, handler, domain handlers."""

    def __init__(self):
        self.container = DIContainer()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, config: Settings, presenter: Presenter):
        """Register and open every diagnostics service."""
        if self._initialized:
            logger.warning("Container already initialized")
            return

        logger.info("Initializing DI container")

        self.container.value("config", config)
        self.container.value("presenter", presenter)
        self._register_error_providers(config)

        sink = self.get("diagnostic_sink")
        sink.set_viewer(presenter.show_log)
        sink.open()

        self._initialized = True
        logger.info("DI container initialized successfully")

    def _register_error_providers(self, config: Settings):
        from src.errors.domain import DomainErrorHandlers
        from src.errors.handlers import ErrorHandler
        from src.errors.metrics import ErrorMetrics
        from src.errors.sink import DiagnosticSink
        from src.errors.throttle import ThrottleWindow

        self.container.singleton(
            "diagnostic_sink",
            DiagnosticSink,
            log_file=config.log_file,
            max_lines=config.log_buffer_lines,
            reveal_lines=config.log_reveal_lines,
        )
        self.container.singleton("error_metrics", ErrorMetrics)
        self.container.singleton(
            "throttle",
            ThrottleWindow,
            window_seconds=config.throttle_window_seconds,
            max_entries=config.throttle_max_entries,
        )

        def create_error_handler():
            return ErrorHandler(
                sink=self.container.get("diagnostic_sink"),
                metrics=self.container.get("error_metrics"),
                presenter=self.container.get("presenter"),
                throttle=self.container.get("throttle"),
                issue_tracker_url=config.issue_tracker_url,
                app_version=__version__,
            )

        self.container.singleton("error_handler", create_error_handler)

        def create_domain_handlers():
            return DomainErrorHandlers(
                self.container.get("error_handler"),
                self.container.get("presenter"),
                config,
            )

        self.container.singleton("diagnostics", create_domain_handlers)

    def bot_data(self) -> Dict[str, Any]:
        """Services exposed to Telegram handlers through ``context.bot_data``."""
        return {
            "diagnostics": self.get("diagnostics"),
            "error_handler": self.get("error_handler"),
            "error_metrics": self.get("error_metrics"),
            "diagnostic_sink": self.get("diagnostic_sink"),
        }

    def get(self, name: str) -> Any:
        return self.container.get(name)

    def has(self, name: str) -> bool:
        return self.container.has(name)

    async def shutdown(self):
        """Dismiss pending prompts and close the diagnostic sink."""
        logger.info("Shutting down DI container")

        try:
            if self.has("presenter"):
                await self.get("presenter").dismiss_all()
        except Exception as e:
            logger.error("Error dismissing pending prompts", error=str(e))

        try:
            if self.has("diagnostic_sink"):
                self.get("diagnostic_sink").close()
        except Exception as e:
            logger.error("Error closing diagnostic sink", error=str(e))

        self._initialized = False
        logger.info("DI container shutdown complete")


async def create_container(config: Settings, presenter: Presenter) -> ApplicationContainer:
    """Build and initialize a container."""
    container = ApplicationContainer()
    await container.initialize(config, presenter)
    return container
