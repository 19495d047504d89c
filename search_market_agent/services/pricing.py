from __future__ import annotations


def ladder_price(index: int, base_price: int, step: int) -> int:
    """候选结果卖单价格：排名越靠后价格越低。

    Args:
        index: 候选结果在搜索结果中的位置（从 0 开始）。
        base_price: 第一名的价格（lamports）。
        step: 相邻名次的价差（lamports）。

    Returns:
        ``base_price - step * index``。

    Raises:
        ValueError: index 为负或结果价格不为正。
    """
    if index < 0:
        raise ValueError(f"candidate index must be non-negative, got {index}")
    price = base_price - step * index
    if price <= 0:
        raise ValueError(f"price ladder exhausted at index {index}: {price}")
    return price


__all__ = ["ladder_price"]
