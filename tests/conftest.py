import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import RULES_FILE, Settings
from grading.rules import load_rule_table
from realtime import BroadcastRouter
from services.coordinator import SessionCoordinator
from services.sessions import SessionStore


class FrozenClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


class RecordingConnection:
    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        self.sent: List[Dict[str, Any]] = []

    def send(self, message: Dict[str, Any]) -> None:
        self.sent.append(message)

    def events(self) -> List[str]:
        return [message["event"] for message in self.sent]

    def last(self, event: str) -> Optional[Any]:
        for message in reversed(self.sent):
            if message["event"] == event:
                return message["data"]
        return None

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def test_settings():
    return Settings(_env_file=None)


@pytest.fixture(scope="session")
def table():
    return load_rule_table(RULES_FILE)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(table, clock):
    return SessionStore(table, instruction_seconds=60, coding_seconds=900, clock=clock)


@pytest.fixture
def router():
    return BroadcastRouter()


@pytest.fixture
def coordinator(store, router, table):
    return SessionCoordinator(store, router, table, max_score=10.0)


@pytest.fixture
def connections(coordinator):
    observer = RecordingConnection("observer")
    subject = RecordingConnection("subject")
    coordinator.connect(observer)
    coordinator.connect(subject)
    return observer, subject


@pytest.fixture
def pageobject_starter(table):
    return table.starter_code("selenium-pageobject")


@pytest.fixture
def pageobject_wait_fixed(pageobject_starter):
    return pageobject_starter.replace(
        "this.driver = driver;",
        "this.driver = driver;\n        this.wait = new WebDriverWait(driver, Duration.ofSeconds(10));",
        1,
    )


PAGEOBJECT_SOLVED = """
public class LoginPage {
    private WebDriver driver;
    private WebDriverWait wait;

    public LoginPage(WebDriver driver) {
        this.driver = driver;
        this.wait = new WebDriverWait(driver, Duration.ofSeconds(10));
    }

    public void login(String username, String password) {
        wait.until(ExpectedConditions.visibilityOfElementLocated(usernameField)).sendKeys(username);
        wait.until(ExpectedConditions.visibilityOfElementLocated(passwordField)).sendKeys(password);
        wait.until(ExpectedConditions.elementToBeClickable(loginButton)).click();
    }

    public String getErrorMessage() {
        return wait.until(ExpectedConditions.visibilityOfElementLocated(errorMessage)).getText();
    }
}
"""


@pytest.fixture
def pageobject_solved():
    return PAGEOBJECT_SOLVED


@pytest.fixture
def app(coordinator, test_settings):
    from api_server import create_app

    return create_app(test_settings, coordinator=coordinator)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client
