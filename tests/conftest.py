import contextlib
from dataclasses import dataclass, field

import pytest

from vanguardscraper import Config, Credentials, PortalSelectors

SEL = PortalSelectors()

# A detailed holdings table as the portal renders it
SAMPLE_TABLE = [
    ("Global All Cap Index Fund", ["0.23%", "1,234.5678", "£1.2345", "£1.3456", "£1,523.99", "£1,661.15", "£137.16"]),
    ("Cash", ["0.00%", "0.00", "£1.00", "£1.00", "£12.34", "£12.34", "£0.00"]),
    ("LifeStrategy 60% Equity Fund", ["0.22%", "10.0000", "£250.00", "£240.50", "£2,500.00", "£2,405.00", "−£95.00"]),
]


@dataclass
class StubElement:
    label: str
    text: str | None = None
    children: dict[str, list["StubElement"]] = field(default_factory=dict)


def make_row(name: str, cells: list[str]) -> StubElement:
    return StubElement(
        label=f"row:{name}",
        children={
            SEL.name_cell: [StubElement("name", name)],
            SEL.money_cell: [StubElement(f"money:{i}", c) for i, c in enumerate(cells)],
        },
    )


class StubPortal:
    """
    In-memory portal following the fixed page layout.

    ``appear_after`` maps a selector to the poll on which it first resolves;
    selectors in ``missing`` never resolve.
    """

    def __init__(self, table=SAMPLE_TABLE, missing=(), appear_after=None) -> None:
        self.rows = [make_row(name, cells) for name, cells in table]
        self.missing = set(missing)
        self.appear_after = appear_after or {}
        self.polls: dict[str, int] = {}
        self.navigated: list[str] = []
        self.clicked: list[str] = []
        self.typed: list[tuple[str, str]] = []

    async def navigate(self, url):
        self.navigated.append(url)

    async def find_element(self, selector, root=None):
        if root is not None:
            found = root.children.get(selector) or []
            return found[0] if found else None
        self.polls[selector] = self.polls.get(selector, 0) + 1
        if selector in self.missing:
            return None
        if self.polls[selector] < self.appear_after.get(selector, 1):
            return None
        return StubElement(selector)

    async def find_elements(self, selector, root=None):
        if root is not None:
            return list(root.children.get(selector) or [])
        if selector == SEL.rows:
            return list(self.rows)
        return []

    async def click(self, element):
        self.clicked.append(element.label)

    async def type_text(self, element, text):
        self.typed.append((element.label, text))

    async def read_text(self, element):
        return element.text


class SessionRecorder:
    """Session factory yielding one portal and recording open/close."""

    def __init__(self, portal: StubPortal) -> None:
        self.portal = portal
        self.events: list[str] = []

    @contextlib.asynccontextmanager
    async def __call__(self, cfg):
        self.events.append("open")
        try:
            yield self.portal
        finally:
            self.events.append("close")


async def no_sleep(_seconds):
    return None


@pytest.fixture
def cfg() -> Config:
    cfg = Config()
    cfg.portal.login_url = "https://portal.example/Login"
    return cfg


@pytest.fixture
def credentials() -> Credentials:
    return Credentials("investor", "hunter2")


@pytest.fixture
def stub_portal():
    return StubPortal


@pytest.fixture
def session_recorder():
    return SessionRecorder


@pytest.fixture
def fast_sleep():
    return no_sleep


@pytest.fixture
def sample_table():
    return SAMPLE_TABLE
