import asyncio
from decimal import Decimal

import pytest

from vanguardscraper import (
    MONEY_FIELDS,
    ElementNotFoundError,
    ExtractionError,
    HoldingsScraper,
    ParseError,
    PortalSelectors,
)

SEL = PortalSelectors()


def run_scraper(cfg, credentials, portal, recorder_cls, sleep):
    recorder = recorder_cls(portal)
    scraper = HoldingsScraper(cfg, session_factory=recorder, sleep=sleep)
    return asyncio.run(scraper.run(credentials)), recorder


def test_scrape_returns_non_cash_holdings_in_table_order(
    cfg, credentials, stub_portal, session_recorder, fast_sleep,
):
    portal = stub_portal()
    records, recorder = run_scraper(cfg, credentials, portal, session_recorder, fast_sleep)

    assert [r.name for r in records] == [
        "Global All Cap Index Fund",
        "LifeStrategy 60% Equity Fund",
    ]
    first = records[0]
    assert first.ongoing_charge == Decimal("0.23")
    assert first.units == Decimal("1234.5678")
    assert first.avg_unit_cost == Decimal("1.2345")
    assert first.last_price == Decimal("1.3456")
    assert first.total_cost == Decimal("1523.99")
    assert first.value == Decimal("1661.15")
    assert first.change == Decimal("137.16")
    assert records[1].change == Decimal("-95.00")
    assert recorder.events == ["open", "close"]


def test_scrape_drives_the_login_flow(cfg, credentials, stub_portal, session_recorder, fast_sleep):
    portal = stub_portal()
    run_scraper(cfg, credentials, portal, session_recorder, fast_sleep)

    assert portal.navigated == ["https://portal.example/Login"]
    assert portal.typed == [(SEL.username, "investor"), (SEL.password, "hunter2")]
    assert portal.clicked == [SEL.submit, SEL.investments_nav, SEL.detail_toggle]
    assert portal.polls[SEL.table] == 1
    assert portal.polls[SEL.first_row] == 1


@pytest.mark.parametrize("position", [0, 1, 3])
def test_cash_row_is_excluded_wherever_it_appears(
    cfg, credentials, stub_portal, session_recorder, fast_sleep, position,
):
    funds = [(f"Fund {i}", ["0.1%", "1", "£1", "£1", "£1", "£1", "£0"]) for i in range(3)]
    table = [*funds]
    table.insert(position, ("Cash", ["0%", "0", "£1", "£1", "£5", "£5", "£0"]))
    records, _ = run_scraper(cfg, credentials, stub_portal(table=table), session_recorder, fast_sleep)

    assert [r.name for r in records] == ["Fund 0", "Fund 1", "Fund 2"]
    for r in records:
        assert len([getattr(r, f) for f in MONEY_FIELDS]) == 7


def test_name_cell_whitespace_is_trimmed_before_cash_check(
    cfg, credentials, stub_portal, session_recorder, fast_sleep,
):
    cells = ["0.1%", "1", "£1", "£1", "£1", "£1", "£0"]
    table = [("\n  Cash \n", cells), ("  Fund A\t", cells)]
    records, _ = run_scraper(cfg, credentials, stub_portal(table=table), session_recorder, fast_sleep)

    assert [r.name for r in records] == ["Fund A"]


def test_slow_render_is_tolerated_by_element_wait(
    cfg, credentials, stub_portal, session_recorder,
):
    slept = []

    async def sleep(seconds):
        slept.append(seconds)

    portal = stub_portal(appear_after={SEL.investments_nav: 4, SEL.first_row: 2})
    records, _ = run_scraper(cfg, credentials, portal, session_recorder, sleep)

    assert len(records) == 2
    assert portal.polls[SEL.investments_nav] == 4
    assert slept == [1.0] * 4


def test_missing_login_field_fails_without_polling(
    cfg, credentials, stub_portal, session_recorder, fast_sleep,
):
    portal = stub_portal(missing={SEL.password})

    with pytest.raises(ExtractionError, match="password field"):
        run_scraper(cfg, credentials, portal, session_recorder, fast_sleep)

    assert portal.polls[SEL.password] == 1
    assert portal.typed == []


def test_missing_table_raises_element_not_found_and_tears_down(
    cfg, credentials, stub_portal, session_recorder, fast_sleep,
):
    portal = stub_portal(missing={SEL.table})
    recorder = session_recorder(portal)
    scraper = HoldingsScraper(cfg, session_factory=recorder, sleep=fast_sleep)

    with pytest.raises(ElementNotFoundError):
        asyncio.run(scraper.run(credentials))

    assert portal.polls[SEL.table] == 10
    assert recorder.events == ["open", "close"]


def test_unparseable_cell_aborts_the_whole_extraction(
    cfg, credentials, stub_portal, session_recorder, fast_sleep,
):
    table = [
        ("Fund A", ["0.1%", "1", "£1", "£1", "£1", "£1", "£0"]),
        ("Fund B", ["0.1%", "1", "£1", "n/a", "£1", "£1", "£0"]),
    ]
    portal = stub_portal(table=table)

    with pytest.raises(ExtractionError) as exc:
        run_scraper(cfg, credentials, portal, session_recorder, fast_sleep)

    assert isinstance(exc.value.__cause__, ParseError)
    assert "Fund B" in str(exc.value)


def test_wrong_money_cell_count_is_fatal(cfg, credentials, stub_portal, session_recorder, fast_sleep):
    table = [("Fund A", ["0.1%", "1", "£1", "£1", "£1", "£1"])]

    with pytest.raises(ExtractionError, match="expected 7 money cells"):
        run_scraper(cfg, credentials, stub_portal(table=table), session_recorder, fast_sleep)


def test_empty_name_cell_is_fatal(cfg, credentials, stub_portal, session_recorder, fast_sleep):
    portal = stub_portal()
    portal.rows[0].children[SEL.name_cell] = []

    with pytest.raises(ExtractionError, match="product name for row 0"):
        run_scraper(cfg, credentials, portal, session_recorder, fast_sleep)
