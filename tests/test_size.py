import pytest
import decimal
from memlayout.size import (parsesize, parseaddr, formatsize, formataddr,
    Size, resolve)
from memlayout.errors import ConfigError, LayoutError

def test_parsesize():
    assert parsesize(260) == 260
    assert parsesize('260') == 260
    assert parsesize('4K') == 4096
    assert parsesize('2048K') == 2*1024*1024
    assert parsesize('1M') == 1024*1024
    assert parsesize('0x400') == 1024
    assert parsesize('0x1K') == 1024
    assert parsesize('0400') == 256
    assert parsesize(' 20K ') == 20480

@pytest.mark.parametrize('size', ['', 'K', '4k', '4KB', '-4', '1.5K', '0xZ'])
def test_parsesize_invalid(size):
    with pytest.raises(ConfigError):
        parsesize(size, 'stack.core0.size')

def test_parsesize_types():
    with pytest.raises(ConfigError):
        parsesize(-1)
    with pytest.raises(ConfigError):
        parsesize(True)
    with pytest.raises(ConfigError) as e:
        parsesize(1.5, 'data.padding')
    assert e.value.field == 'data.padding'

def test_parseaddr():
    assert parseaddr(0x20000000) == 0x20000000
    assert parseaddr('0x20000000') == 0x20000000
    assert parseaddr('536870912') == 0x20000000
    assert parseaddr(0xffffffff) == 0xffffffff
    with pytest.raises(ConfigError):
        parseaddr(1 << 32)
    with pytest.raises(ConfigError):
        parseaddr('main')
    with pytest.raises(ConfigError):
        parseaddr(-4)

def test_format():
    assert formatsize(20480) == '20K'
    assert formatsize(2048*1024) == '2M'
    assert formatsize(260) == '260'
    assert formatsize(0) == '0'
    assert formataddr(0x08000000) == '0x08000000'
    assert formataddr(0) == '0x00000000'

def test_size_parse():
    size = Size.parse('4K')
    assert size.isfixed() and not size.isrelative()
    assert size.fixed == 4096
    assert str(size) == '4K'

    size = Size.parse('4.61%')
    assert size.isrelative() and not size.isfixed()
    assert size.percent == decimal.Decimal('4.61')
    assert str(size) == '4.61%'

    assert Size.parse('100%') == Size(percent=100)
    assert Size.parse(' 50 %') == Size.parse('50%')
    assert Size.parse(64) == Size(fixed=64)

@pytest.mark.parametrize('size', ['101%', '%', 'half%', '-5%', '4,61%'])
def test_size_parse_invalid(size):
    with pytest.raises(ConfigError):
        Size.parse(size, 'heap.core0.size')

def test_size_immutable():
    size = Size.parse('50%')
    with pytest.raises(AttributeError):
        size.percent = 25
    assert {Size.parse('50%'), Size.parse('50%')} == {size}

def test_resolve():
    assert resolve(15984, Size.parse('4.61%')) == 736
    assert resolve(261360, Size.parse('50%')) == 130680
    assert resolve(0, Size.parse('100%')) == 0
    assert resolve(20480, Size.parse('4K')) == 4096
    # floor, never round up
    assert resolve(3, Size.parse('50%')) == 1
    assert resolve(100, Size.parse('33.33%')) == 33

def test_resolve_deterministic():
    size = Size.parse('11.37%')
    first = resolve(130680, size)
    for _ in range(10):
        assert resolve(130680, size) == first

def test_resolve_monotonic():
    resolved = [resolve(15984, Size.parse(p))
        for p in ['18.14%', '15.88%', '11.37%', '4.61%', '0%']]
    assert resolved == sorted(resolved, reverse=True)

def test_resolve_overflow():
    with pytest.raises(LayoutError.Overflow) as e:
        resolve(20480, Size.parse('32K'), name='stack.core0')
    assert e.value.requested == 32768
    assert e.value.available == 20480
    assert 'stack.core0' in str(e.value)

def test_resolve_overflow_names_bank():
    with pytest.raises(LayoutError.Overflow) as e:
        resolve(20480, Size.parse('32K'), name='stack.core0', bank='main')
    assert e.value.bank == 'main'
    assert 'ram.main' in str(e.value)
    assert 'stack.core0' in str(e.value)
