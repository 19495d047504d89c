"""程序账户变更处理：市场识别、跳过规则与候选间的失败隔离。"""

from __future__ import annotations

import asyncio

import pytest
from solders.pubkey import Pubkey
from solders.system_program import ID as SYS_PROGRAM_ID
from solders.system_program import decode_create_account
from spl.token.constants import MINT_LEN

from conftest import FakeBugsnag, FakeLedger, FakeSearch, make_candidates
from search_market_agent.errors import SearchError
from search_market_agent.program.layouts import decode_instruction, encode_account
from search_market_agent.services import subscriber as subscriber_module
from search_market_agent.services.attempts import AttemptTracker
from search_market_agent.services.funding import AirdropFunder
from search_market_agent.services.reporting import ErrorReporter
from search_market_agent.services.resolver import MarketResolver
from search_market_agent.services.sequencer import TransactionSequencer
from search_market_agent.services.subscriber import ChangeSubscriber
from search_market_agent.types import CreateResult, MarketRecord, ResultRecord


def _subscriber(
    ledger: FakeLedger,
    search: FakeSearch,
    program_id: Pubkey,
    bugsnag: FakeBugsnag,
    *,
    funder: bool = False,
    attempts: AttemptTracker | None = None,
) -> ChangeSubscriber:
    sequencer = TransactionSequencer(ledger, program_id, base_price=200_000_000, price_step=10_000_000)
    return ChangeSubscriber(
        MarketResolver(search),
        sequencer,
        ErrorReporter(client=bugsnag),
        funder=AirdropFunder(ledger, ledger.payer_pubkey) if funder else None,
        attempts=attempts,
    )


def _create_results(ledger: FakeLedger, program_id: Pubkey) -> list[CreateResult]:
    payloads = [decode_instruction(bytes(ix.data)) for ix in ledger.program_instructions(program_id)]
    return [p for p in payloads if isinstance(p, CreateResult)]


def test_unresolved_market_is_settled(program_id, ledger, bugsnag) -> None:
    """未决市场：按问题文本搜索一次，并为唯一候选完成结算。"""

    search = FakeSearch(make_candidates(1))
    handler = _subscriber(ledger, search, program_id, bugsnag)
    records = asyncio.run(handler.handle_account(Pubkey.new_unique(), encode_account(MarketRecord(search_string="test"))))

    assert search.queries == ["test"]
    assert len(records) == 1
    assert records[0].state.value == "order_placed"
    assert len(_create_results(ledger, program_id)) == 1
    assert bugsnag.notified == []


def test_decided_market_makes_no_ledger_mutations(program_id, ledger, bugsnag) -> None:
    search = FakeSearch(make_candidates(3))
    handler = _subscriber(ledger, search, program_id, bugsnag, funder=True)
    data = encode_account(MarketRecord(search_string="done", best_result=Pubkey.new_unique()))
    assert asyncio.run(handler.handle_account(Pubkey.new_unique(), data)) == []

    assert search.queries == []
    assert ledger.submits == []
    assert "submit" not in ledger.calls
    assert "request_airdrop" not in ledger.calls


def test_blank_account_is_not_decoded(program_id, ledger, bugsnag, monkeypatch) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("blank account must not be decoded")

    monkeypatch.setattr(subscriber_module, "decode_account", fail)
    monkeypatch.setattr(subscriber_module, "account_kind", fail)
    search = FakeSearch(make_candidates(1))
    handler = _subscriber(ledger, search, program_id, bugsnag)
    assert asyncio.run(handler.handle_account(Pubkey.new_unique(), bytes(256))) == []
    assert search.queries == []
    assert ledger.calls == []


@pytest.mark.parametrize(
    "data",
    [
        encode_account(ResultRecord(search_market=Pubkey.new_unique(), url="u", name="n", snippet="s")),
        bytes([0, 0xFF, 0xFF]),
        bytes([42]) + bytes(10),
    ],
)
def test_other_accounts_are_ignored(program_id, ledger, bugsnag, data: bytes) -> None:
    search = FakeSearch(make_candidates(1))
    handler = _subscriber(ledger, search, program_id, bugsnag)
    assert asyncio.run(handler.handle_account(Pubkey.new_unique(), data)) == []
    assert search.queries == []
    assert bugsnag.notified == []


def test_resolution_failure_is_reported_with_market_context(program_id, ledger, bugsnag) -> None:
    search = FakeSearch(error=SearchError("search down"))
    handler = _subscriber(ledger, search, program_id, bugsnag)
    market = Pubkey.new_unique()
    assert asyncio.run(handler.handle_account(market, encode_account(MarketRecord(search_string="q")))) == []

    (exc, metadata), = bugsnag.notified
    assert isinstance(exc, SearchError)
    assert metadata["market"]["searchMarketId"] == str(market)
    assert "q" in metadata["market"]["searchMarket"]
    assert ledger.submits == []


def test_failed_candidate_does_not_affect_siblings(program_id, bugsnag) -> None:
    """三个候选中一个的 mint 创建失败：其余两个照常完成，失败者不再继续。"""

    failed = {"done": False}

    def fail_first_mint(instructions) -> bool:
        ix = instructions[0]
        if failed["done"] or len(instructions) != 1 or ix.program_id != SYS_PROGRAM_ID:
            return False
        if decode_create_account(ix)["space"] != MINT_LEN:
            return False
        failed["done"] = True
        return True

    ledger = FakeLedger(fail_on=fail_first_mint)
    search = FakeSearch(make_candidates(3))
    handler = _subscriber(ledger, search, program_id, bugsnag)
    records = asyncio.run(handler.handle_account(Pubkey.new_unique(), encode_account(MarketRecord(search_string="q"))))

    assert len(records) == 2
    (exc, metadata), = bugsnag.notified
    failed_index = metadata["market"]["candidateIndex"]
    assert {r.candidate_index for r in records} | {failed_index} == {0, 1, 2}
    assert exc.step == "create_accounts"

    created = _create_results(ledger, program_id)
    assert len(created) == 2
    assert f"https://example.com/{failed_index}" not in {p.url for p in created}


def test_repeat_notification_resolves_again_but_settles_once(program_id, ledger, bugsnag) -> None:
    search = FakeSearch(make_candidates(2))
    handler = _subscriber(ledger, search, program_id, bugsnag, attempts=AttemptTracker(16))
    market = Pubkey.new_unique()
    data = encode_account(MarketRecord(search_string="again"))

    first = asyncio.run(handler.handle_account(market, data))
    second = asyncio.run(handler.handle_account(market, data))

    assert len(first) == 2
    assert second == []
    assert search.queries == ["again", "again"]
    assert len(_create_results(ledger, program_id)) == 2


def test_low_balance_triggers_airdrop_before_handling(program_id, bugsnag) -> None:
    ledger = FakeLedger(balance=0)
    handler = _subscriber(ledger, FakeSearch(), program_id, bugsnag, funder=True)
    asyncio.run(handler.handle_account(Pubkey.new_unique(), bytes(64)))
    assert ledger.calls == ["get_balance", "request_airdrop"]


def test_unwritable_journal_stays_inside_candidate_boundary(program_id, bugsnag) -> None:
    """流水不可写时，两个候选仍各自完成，只有账本失败的候选被上报。"""

    class UnwritableJournal:
        def record(self, settlement) -> None:
            raise OSError("disk full")

    failed = {"done": False}

    def fail_first_deposit(instructions) -> bool:
        if failed["done"] or len(instructions) != 5:
            return False
        failed["done"] = True
        return True

    ledger = FakeLedger(fail_on=fail_first_deposit)
    sequencer = TransactionSequencer(
        ledger, program_id, base_price=200_000_000, price_step=10_000_000, journal=UnwritableJournal()
    )
    handler = ChangeSubscriber(MarketResolver(FakeSearch(make_candidates(2))), sequencer, ErrorReporter(client=bugsnag))
    records = asyncio.run(handler.handle_account(Pubkey.new_unique(), encode_account(MarketRecord(search_string="q"))))

    assert len(records) == 1
    (exc, metadata), = bugsnag.notified
    assert exc.step == "deposit"
    assert metadata["market"]["candidateIndex"] in (0, 1)
