import pytest
from memlayout.memory import Pool
from memlayout.pools import partition, Allocation
from memlayout.size import Size
from memlayout.errors import LayoutError

def pools(*pools):
    return [Pool(block, Size.parse(count)) for block, count in pools]

def test_partition():
    part = partition(15984, pools((4, '4.61%'), (512, '4.61%')))
    assert part.pools == (Allocation(4, 184), Allocation(512, 1))
    assert part.used == 4*184 + 512
    assert part.headroom == 15984 - part.used

def test_partition_absolute():
    part = partition(4096, pools((16, 64), (256, 8)))
    assert [pool.count for pool in part.pools] == [64, 8]
    assert part.used == 16*64 + 256*8
    assert part.headroom == 1024

def test_partition_declared_order():
    part = partition(4096, pools((512, '50%'), (4, '50%')))
    assert [pool.block for pool in part.pools] == [512, 4]
    assert [pool.count for pool in part.pools] == [4, 512]

def test_partition_within_budget():
    percents = ['4.61%', '11.37%', '15.88%', '18.14%',
        '18.14%', '15.88%', '11.37%', '4.61%']
    blocks = [4, 8, 20, 56, 116, 208, 336, 512]
    for budget in [0, 4, 1000, 15984, 16112, 130680]:
        part = partition(budget, pools(*zip(blocks, percents)))
        assert part.used <= budget
        assert part.headroom >= 0

def test_partition_monotonic():
    counts = [
        partition(16112, pools((56, percent), (4, '10%'))).pools[0].count
        for percent in ['18.14%', '18%', '15.88%', '10%', '1%', '0%']]
    assert counts == sorted(counts, reverse=True)

def test_partition_zero_budget():
    part = partition(0, pools((4, '4.61%'), (512, '100%')))
    assert [pool.count for pool in part.pools] == [0, 0]
    assert part.headroom == 0

def test_partition_overflow():
    with pytest.raises(LayoutError.HeapOverflow) as e:
        partition(1024, pools((512, 1), (256, 3)), heap='core0')
    assert e.value.heap == 'core0'
    assert e.value.overflow == 256
    assert e.value.budget == 1024
    assert 'heap.core0' in str(e.value)

def test_partition_overflow_mixed():
    # percentages never make room for absolute pools
    with pytest.raises(LayoutError.HeapOverflow) as e:
        partition(1024, pools((4, '100%'), (16, 1)))
    assert e.value.heap is None
    assert 'None' not in str(e.value)
    assert str(e.value).startswith('Pools need 1040 bytes')
