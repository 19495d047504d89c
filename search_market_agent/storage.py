from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Iterator

from .types import SettlementRecord

JOURNAL_FILE = "settlements.jsonl"


def _append_jsonl(path: Path, records: Iterable[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        for rec in records:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")


def _read_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    if not path.exists():
        return
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                yield json.loads(line)


class SettlementJournal:
    """结算流水：每次状态变化追加一行 JSON，独立于进程内存保存。

    失败记录中保留了已创建账户的地址，便于定位孤儿账户。
    """

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def in_dir(cls, data_dir: Path) -> "SettlementJournal":
        return cls(data_dir / JOURNAL_FILE)

    def record(self, settlement: SettlementRecord) -> None:
        _append_jsonl(self.path, [settlement.to_dict()])

    def entries(self) -> list[dict[str, Any]]:
        return list(_read_jsonl(self.path))

    def latest(self) -> list[dict[str, Any]]:
        """每个 (market, candidate_index) 只保留最后一条记录。"""
        latest: dict[tuple[str, int], dict[str, Any]] = {}
        for entry in _read_jsonl(self.path):
            latest[(entry["market"], int(entry["candidate_index"]))] = entry
        return list(latest.values())


__all__ = ["SettlementJournal", "JOURNAL_FILE"]
