"""
Memory sizes and addresses, as written in layout.toml and as printed in
linker scripts.

Sizes may be fixed ("4K", "0x400", 260) or relative to some enclosing
budget ("50%", "4.61%"). Relative sizes are resolved with exact decimal
arithmetic and always rounded down.
"""
import re
import decimal
from .errors import ConfigError, Overflow

ADDRESS_LIMIT = 1 << 32

MULTIPLIERS = {'K': 1024, 'M': 1024*1024, 'G': 1024*1024*1024}

def parsesize(s, field=None):
    """
    Parse a fixed size. Accepts plain integers or strings with an optional
    K/M/G suffix. As in linker scripts, a 0x prefix means hexadecimal and a
    leading 0 means octal.
    """
    if isinstance(s, bool):
        raise ConfigError("Invalid size %r" % s, field)
    if isinstance(s, int):
        if s < 0:
            raise ConfigError("Invalid negative size %d" % s, field)
        return s
    if not isinstance(s, str):
        raise ConfigError("Invalid size %r" % (s,), field)

    m = re.match(r'^\s*'
        r'(?:(0[xX][0-9a-fA-F]+)|(0[0-7]+)|([0-9]+))'
        r'\s*([KMG])?\s*(?:bytes)?\s*$', s)
    if not m:
        raise ConfigError("Invalid size %r" % s, field)

    value = (int(m.group(1), 16) if m.group(1) else
        int(m.group(2), 8) if m.group(2) else
        int(m.group(3), 10))
    return value * MULTIPLIERS.get(m.group(4), 1)

def parseaddr(s, field=None):
    """
    Parse an address, either a TOML integer or a decimal/hexadecimal string.
    """
    if isinstance(s, str):
        try:
            addr = int(s.strip(), 0)
        except ValueError:
            raise ConfigError("Invalid address %r" % s, field)
    elif isinstance(s, int) and not isinstance(s, bool):
        addr = s
    else:
        raise ConfigError("Invalid address %r" % (s,), field)

    if addr < 0 or addr >= ADDRESS_LIMIT:
        raise ConfigError("Address %#x does not fit in 32 bits" % addr, field)
    return addr

def formatsize(size):
    """ Canonical representation of a size, 20480 -> 20K """
    if size > 0 and size % MULTIPLIERS['M'] == 0:
        return '%dM' % (size // MULTIPLIERS['M'])
    elif size > 0 and size % MULTIPLIERS['K'] == 0:
        return '%dK' % (size // MULTIPLIERS['K'])
    else:
        return '%d' % size

def formataddr(addr):
    return '%#010x' % addr


class Size:
    """
    Either a fixed quantity or a percentage of some enclosing budget.
    """
    __slots__ = ('fixed', 'percent')

    def __init__(self, fixed=None, percent=None):
        assert (fixed is None) != (percent is None), (
            "Size needs exactly one of fixed or percent")
        object.__setattr__(self, 'fixed', fixed)
        object.__setattr__(self, 'percent',
            decimal.Decimal(percent) if percent is not None else None)

    def __setattr__(self, name, value):
        raise AttributeError("Size is immutable")

    @staticmethod
    def parse(s, field=None):
        if isinstance(s, Size):
            return s
        if isinstance(s, str) and s.strip().endswith('%'):
            m = re.match(r'^\s*([0-9]+(?:\.[0-9]*)?|\.[0-9]+)\s*%\s*$', s)
            if not m:
                raise ConfigError("Invalid percentage %r" % s, field)
            percent = decimal.Decimal(m.group(1))
            if percent > 100:
                raise ConfigError("Percentage %r is not in [0, 100]" % s,
                    field)
            return Size(percent=percent)
        return Size(fixed=parsesize(s, field))

    def isfixed(self):
        return self.fixed is not None

    def isrelative(self):
        return self.percent is not None

    def __eq__(self, other):
        if not isinstance(other, Size):
            return NotImplemented
        return (self.fixed, self.percent) == (other.fixed, other.percent)

    def __hash__(self):
        return hash((self.fixed, self.percent))

    def __repr__(self):
        if self.isrelative():
            return 'Size(percent=%r)' % str(self.percent)
        return 'Size(fixed=%d)' % self.fixed

    def __str__(self):
        if self.isrelative():
            return '%s%%' % self.percent
        return formatsize(self.fixed)


def resolve(total, size, name=None, bank=None):
    """
    Resolve SIZE against an enclosing budget of TOTAL bytes.

    Percentages resolve to floor(total * percent / 100). The remainder is
    left unused, it is never redistributed. A fixed size larger than TOTAL
    raises Overflow naming NAME and BANK.
    """
    if size.isrelative():
        return int((decimal.Decimal(total) * size.percent) // 100)

    if size.fixed > total:
        raise Overflow(size.fixed, total, name=name, bank=bank)
    return size.fixed
