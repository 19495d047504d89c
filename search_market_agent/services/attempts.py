from __future__ import annotations

from collections import OrderedDict


class AttemptTracker:
    """进程内已尝试结算的候选集合，容量有限（LRU 淘汰）。

    键为 ``(market, candidate_index)``。同一市场在链上决出之前被重复通知时，
    已尝试过的候选不会再次创建账户。进程重启后集合清空。
    """

    def __init__(self, maxsize: int = 1024):
        if maxsize < 1:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self._seen: OrderedDict[tuple[str, int], None] = OrderedDict()

    def claim(self, market: str, candidate_index: int) -> bool:
        """登记一次尝试；若此前已登记过则返回 False。"""
        key = (market, candidate_index)
        if key in self._seen:
            self._seen.move_to_end(key)
            return False
        self._seen[key] = None
        if len(self._seen) > self.maxsize:
            self._seen.popitem(last=False)
        return True

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, key: object) -> bool:
        return key in self._seen


__all__ = ["AttemptTracker"]
