#
# Heap pool partitioning
#
# Copyright (c) 2020, Arm Limited. All rights reserved.
# SPDX-License-Identifier: BSD-3-Clause
#

import collections as co
from .errors import HeapOverflow
from .size import resolve


class Allocation(co.namedtuple('Allocation', 'block count')):
    """
    Resolved pool, COUNT blocks of BLOCK bytes each.
    """
    __slots__ = ()

    @property
    def size(self):
        return self.block * self.count


class Partition(co.namedtuple('Partition', 'budget pools')):
    """
    Heap budget split into pools, in the pools' declared order.
    """
    __slots__ = ()

    @property
    def used(self):
        return sum(pool.size for pool in self.pools)

    @property
    def headroom(self):
        return self.budget - self.used


def partition(budget, pools, heap=None):
    """
    Split a heap's BUDGET bytes between POOLS.

    Pools are processed in declared order. A percentage count takes that
    share of the whole budget, rounded down, and then as many whole blocks as
    fit in it. Leftover bytes stay unused. If the pools need more than the
    budget this raises HeapOverflow, no pool is ever shrunk to make things
    fit.
    """
    allocations = []
    used = 0
    for pool in pools:
        if pool.count.isrelative():
            count = resolve(budget, pool.count) // pool.block
        else:
            count = pool.count.fixed
        allocations.append(Allocation(pool.block, count))
        used += pool.block * count

    if used > budget:
        raise HeapOverflow(heap, used - budget, budget)

    return Partition(budget, tuple(allocations))
