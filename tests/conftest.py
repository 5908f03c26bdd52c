"""
Pytest configuration and fixtures for the diagnostics tests.
"""

from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence
from unittest.mock import AsyncMock, Mock

import pytest

from src.config.settings import Settings
from src.errors import (
    DiagnosticSink,
    DomainErrorHandlers,
    ErrorHandler,
    ErrorMetrics,
    ThrottleWindow,
)
from src.errors.taxonomy import ErrorSeverity, PromptChoice
from src.ui.presenter import Presenter


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingPresenter(Presenter):
    """Presenter double that records everything and answers prompts from a chooser."""

    def __init__(self):
        self.prompts: List[tuple] = []
        self.chooser: Optional[Callable[[List[PromptChoice]], Optional[PromptChoice]]] = None
        self.urls: List[str] = []
        self.copied: List[str] = []
        self.notifications: List[str] = []
        self.logs: List[str] = []
        self.files: List[str] = []
        self.settings_keys: List[str] = []
        self.dismissed = 0

    def choose_label(self, label: str) -> None:
        def pick(choices):
            for choice in choices:
                if choice.label == label:
                    return choice
            raise AssertionError(f"No choice labelled {label!r} in {[c.label for c in choices]}")

        self.chooser = pick

    @property
    def prompt_labels(self) -> List[List[str]]:
        return [[choice.label for choice in choices] for _, _, choices in self.prompts]

    async def prompt(self, severity: ErrorSeverity, message: str, choices: Sequence[PromptChoice]):
        choices = list(choices)
        self.prompts.append((severity, message, choices))
        if self.chooser is None:
            return None
        return self.chooser(choices)

    async def notify(self, message: str) -> None:
        self.notifications.append(message)

    async def open_url(self, url: str) -> None:
        self.urls.append(url)

    async def copy_text(self, text: str) -> None:
        self.copied.append(text)

    async def show_log(self, text: str) -> None:
        self.logs.append(text)

    async def open_file(self, path: str) -> None:
        self.files.append(path)

    async def open_settings(self, key: str) -> None:
        self.settings_keys.append(key)

    async def dismiss_all(self) -> None:
        self.dismissed += 1


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def test_config(temp_dir: Path) -> Settings:
    """Create test configuration."""
    return Settings(
        _env_file=None,
        telegram_bot_token="test_token",
        telegram_chat_id=123456789,
        log_file=temp_dir / "diagnostics.log",
        kubeconfig_path="/home/test/.kube/config",
        throttle_window_ms=5000,
        throttle_max_entries=16,
        issue_tracker_url="https://github.com/example/kubediag/issues/new",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def sink(presenter: RecordingPresenter) -> DiagnosticSink:
    sink = DiagnosticSink(viewer=presenter.show_log)
    sink.open()
    yield sink
    sink.close()


@pytest.fixture
def metrics() -> ErrorMetrics:
    return ErrorMetrics()


@pytest.fixture
def throttle(clock: FakeClock) -> ThrottleWindow:
    return ThrottleWindow(window_seconds=5.0, max_entries=16, clock=clock)


@pytest.fixture
def error_handler(sink, metrics, presenter, throttle, test_config) -> ErrorHandler:
    return ErrorHandler(
        sink=sink,
        metrics=metrics,
        presenter=presenter,
        throttle=throttle,
        issue_tracker_url=test_config.issue_tracker_url,
        app_version="9.9.9",
    )


@pytest.fixture
def mock_error_handler() -> Mock:
    """ErrorHandler double capturing the reports it receives."""
    mock = Mock(spec=ErrorHandler)
    mock.handle_error = AsyncMock()
    return mock


@pytest.fixture
def domain(mock_error_handler, presenter, test_config) -> DomainErrorHandlers:
    return DomainErrorHandlers(mock_error_handler, presenter, test_config)


@pytest.fixture
def last_report(mock_error_handler) -> Callable[[], Any]:
    def _last():
        assert mock_error_handler.handle_error.await_count >= 1
        return mock_error_handler.handle_error.await_args.args[0]

    return _last


@pytest.fixture
def api_failure() -> Callable[..., Exception]:
    """Build foreign API exceptions shaped like the Kubernetes client's ApiException."""

    class ForeignApiException(Exception):
        pass

    def _make(status: Optional[int], body: Any = None, headers: Optional[dict] = None, message: str = "boom"):
        failure = ForeignApiException(message)
        failure.status = status
        failure.body = body
        failure.headers = headers
        return failure

    return _make
