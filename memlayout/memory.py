"""
Typed description of a microcontroller memory layout, as read from a
layout.toml file.

Nothing here computes addresses, see assemble.py for that. Parsing is
all-or-nothing, any problem raises ConfigError naming the offending field.
"""
import collections as co
import toml
from .errors import ConfigError
from .size import Size, parsesize, parseaddr, formatsize, ADDRESS_LIMIT
from .util import isaligned, shoutysnake, ALIGN

# name of the layout description looked up by default
LAYOUT_CONFIG = 'layout.toml'

# bootstrap sequence + stream runtime header
STREAM_RUNTIME_SIZE = 12
MIN_STREAM_BUFFER_SIZE = 16 + STREAM_RUNTIME_SIZE

PLATFORMS = ['arm', 'riscv']


class Memory(co.namedtuple('Memory', 'name kind origin size mode')):
    """
    Description of a memory bank named MEMORY. KIND is one of flash, ram or
    extra.
    """
    __slots__ = ()
    MODEFLAGS = ['r', 'w', 'x']
    DEFAULTMODES = {'flash': 'rx', 'ram': 'rwx', 'extra': 'rw'}

    @staticmethod
    def parsemode(s, field=None):
        if not isinstance(s, str):
            raise ConfigError("Invalid memory mode %r" % (s,), field)
        mode = set(s) - {'-'}
        if not mode.issubset(set(Memory.MODEFLAGS)):
            raise ConfigError("Invalid memory mode %r" % s, field)
        return ''.join(c for c in Memory.MODEFLAGS if c in mode)

    @staticmethod
    def parse(name, kind, args, field):
        checkfields(args, {'origin', 'size', 'mode'}, field)
        if 'origin' not in args:
            raise ConfigError("Missing origin", field + '.origin')
        if 'size' not in args:
            raise ConfigError("Missing size", field + '.size')

        origin = parseaddr(args['origin'], field + '.origin')
        size = parsesize(args['size'], field + '.size')
        mode = Memory.parsemode(
            args.get('mode', Memory.DEFAULTMODES[kind]), field + '.mode')

        checkaligned(origin, field + '.origin')
        checksize(size, field + '.size')
        if origin + size > ADDRESS_LIMIT:
            raise ConfigError("Memory %#010x-%#010x does not fit in "
                "32 bits" % (origin, origin+size-1), field)

        return Memory(name, kind, origin, size, mode)

    @property
    def end(self):
        return self.origin + self.size

    @property
    def symbol(self):
        """ Name of the bank in a linker script's MEMORY block """
        if self.kind == 'flash':
            return 'FLASH_%s' % shoutysnake(self.name)
        elif self.kind == 'ram':
            return 'RAM_%s' % shoutysnake(self.name)
        else:
            return shoutysnake(self.name)

    def __str__(self):
        return "%(mode)s %(range)s %(size)d bytes" % dict(
            mode=''.join(c if c in self.mode else '-'
                for c in Memory.MODEFLAGS),
            range='%#010x-%#010x' % (self.origin, self.end-1),
            size=self.size)

    def __contains__(self, addr):
        return self.origin <= addr < self.end

    def overlaps(self, other):
        return (self.origin < other.origin+other.size and
            self.origin+self.size > other.origin)


class Data(co.namedtuple('Data', 'ram padding')):
    """
    Combined .data and .bss section of the program. Its size is only known
    once the program has been built, PADDING reserves extra bytes to absorb
    alignment drift between the two linking stages.
    """
    __slots__ = ()

    @staticmethod
    def parse(args, field='data'):
        checkfields(args, {'ram', 'padding'}, field)
        ram = checkref(args, field)
        padding = parsesize(args.get('padding', 0), field + '.padding')
        checkaligned(padding, field + '.padding')
        return Data(ram, padding)


class Stack(co.namedtuple('Stack', 'name ram size')):
    """
    Stack of a single core, named core<N>.
    """
    __slots__ = ()

    @staticmethod
    def parse(name, args, field):
        checkfields(args, {'ram', 'size'}, field)
        return Stack(name, checkref(args, field),
            parsesection(args, field))


class Pool(co.namedtuple('Pool', 'block count')):
    """
    Pool of fixed size blocks. COUNT is either an absolute number of blocks
    or a percentage of the whole heap.
    """
    __slots__ = ()

    @staticmethod
    def parse(args, field):
        if not isinstance(args, dict):
            raise ConfigError("Pool must be a table", field)
        checkfields(args, {'block', 'count'}, field)
        if 'block' not in args:
            raise ConfigError("Missing block size", field + '.block')
        if 'count' not in args:
            raise ConfigError("Missing block count", field + '.count')

        block = parsesize(args['block'], field + '.block')
        checksize(block, field + '.block')
        count = Size.parse(args['count'], field + '.count')
        return Pool(block, count)


class Heap(co.namedtuple('Heap', 'name ram size pools')):
    """
    Multi-pool heap of a single core. POOLS are kept in declared order, which
    is also the order the allocator searches them in.
    """
    __slots__ = ()

    @staticmethod
    def parse(name, args, field):
        checkfields(args, {'ram', 'size', 'pools'}, field)
        pools = args.get('pools', [])
        if not isinstance(pools, list):
            raise ConfigError("Pools must be an array", field + '.pools')
        return Heap(name, checkref(args, field),
            parsesection(args, field),
            tuple(Pool.parse(pool, '%s.pools[%d]' % (field, i))
                for i, pool in enumerate(pools)))


class Stream(co.namedtuple('Stream', 'name ram size primary')):
    """
    Ring buffer of a diagnostic stream, read out by an external probe.
    PRIMARY marks the buffer used for the boot-time channel.
    """
    __slots__ = ()

    @staticmethod
    def parse(name, args, field):
        checkfields(args, {'ram', 'size', 'init-primary'}, field)
        ram = checkref(args, field)
        if 'size' not in args:
            raise ConfigError("Missing size", field + '.size')
        size = parsesize(args['size'], field + '.size')
        checkaligned(size, field + '.size')
        if size < MIN_STREAM_BUFFER_SIZE:
            raise ConfigError("Stream buffer size %s is less than the "
                "minimum possible size %s" % (
                    formatsize(size), formatsize(MIN_STREAM_BUFFER_SIZE)),
                field + '.size')
        primary = args.get('init-primary', False)
        if not isinstance(primary, bool):
            raise ConfigError("Expected true or false, found %r" % (primary,),
                field + '.init-primary')
        return Stream(name, ram, size, primary)


class Extra(co.namedtuple('Extra', 'name ram size mode')):
    """
    Extra named block carved out of a RAM bank, for specialized sections.
    """
    __slots__ = ()

    @staticmethod
    def parse(name, args, field):
        checkfields(args, {'ram', 'size', 'mode'}, field)
        return Extra(name, checkref(args, field),
            parsesection(args, field),
            Memory.parsemode(args.get('mode', Memory.DEFAULTMODES['extra']),
                field + '.mode'))


class Linker(co.namedtuple('Linker', 'platform include_before include_after')):
    """
    Additional linker options.
    """
    __slots__ = ()

    @staticmethod
    def parse(args, field='linker'):
        checkfields(args, {'platform', 'include-before', 'include-after'},
            field)
        platform = args.get('platform', 'arm')
        if platform not in PLATFORMS:
            raise ConfigError("Unknown platform %r, must be one of: {%s}" % (
                platform, ', '.join(PLATFORMS)), field + '.platform')

        includes = []
        for key in ['include-before', 'include-after']:
            include = args.get(key, [])
            if (not isinstance(include, list) or
                    not all(isinstance(path, str) for path in include)):
                raise ConfigError("Expected an array of file names",
                    '%s.%s' % (field, key))
            includes.append(tuple(include))

        return Linker(platform, *includes)


class Layout(co.namedtuple('Layout', [
        'flash', 'ram', 'extra', 'data', 'stacks', 'heaps',
        'streamram', 'streams', 'blocks', 'linker'])):
    """
    Full memory layout description. Every collection is an ordered tuple in
    declaration order.
    """
    __slots__ = ()

    @staticmethod
    def parse(config):
        """
        Build a layout description from a parsed layout.toml dictionary.
        """
        if not isinstance(config, dict):
            raise ConfigError("Layout description must be a table")
        checkfields(config, {'flash', 'ram', 'extra', 'data',
            'stack', 'heap', 'stream', 'linker'}, None)

        flash = tuple(Memory.parse(name, 'flash', args, 'flash.%s' % name)
            for name, args in section(config, 'flash', required=True))
        ram = tuple(Memory.parse(name, 'ram', args, 'ram.%s' % name)
            for name, args in section(config, 'ram', required=True))
        if not flash:
            raise ConfigError("At least one flash region is required",
                'flash')
        if not ram:
            raise ConfigError("At least one RAM bank is required", 'ram')

        # extra blocks either have their own address or live in a RAM bank
        extra, blocks = [], []
        for name, args in section(config, 'extra'):
            if 'ram' in args:
                blocks.append(Extra.parse(name, args, 'extra.%s' % name))
            else:
                extra.append(Memory.parse(name, 'extra', args,
                    'extra.%s' % name))

        if 'data' not in config:
            raise ConfigError("Missing mandatory section data", 'data')
        data = Data.parse(table(config['data'], 'data'))

        stacks = tuple(Stack.parse(name, args, 'stack.%s' % name)
            for name, args in section(config, 'stack'))
        heaps = tuple(Heap.parse(name, args, 'heap.%s' % name)
            for name, args in section(config, 'heap'))

        # [stream] mixes the global stream table with per-core buffers
        stream = table(config.get('stream', {}), 'stream')
        streamram = None
        streams = []
        for key, args in stream.items():
            if isinstance(args, dict):
                streams.append(Stream.parse(key, args, 'stream.%s' % key))
            elif key == 'ram':
                if not isinstance(args, str):
                    raise ConfigError("Expected a RAM bank name",
                        'stream.ram')
                streamram = args
            else:
                raise ConfigError("Unknown field", 'stream.%s' % key)
        if streams and streamram is None:
            raise ConfigError("Stream buffers are declared but no RAM bank "
                "is given for the stream table", 'stream.ram')
        if streams and sum(s.primary for s in streams) != 1:
            raise ConfigError("Exactly one stream buffer must be marked "
                "init-primary, found %d" % sum(s.primary for s in streams),
                'stream')

        linker = Linker.parse(table(config.get('linker', {}), 'linker'))

        layout = Layout(flash, ram, tuple(extra), data,
            stacks, heaps, streamram, tuple(streams), tuple(blocks), linker)
        layout.validate()
        return layout

    @staticmethod
    def load(path):
        """
        Read and parse a layout.toml file.
        """
        try:
            config = toml.load(path)
        except toml.TomlDecodeError as e:
            raise ConfigError("while parsing %r: %s" % (path, e))
        return Layout.parse(config)

    def validate(self):
        """
        Check cross references between sections.
        """
        names = set()
        for memory in self.memories():
            if memory.name in names:
                raise ConfigError("Duplicate bank name %r" % memory.name,
                    '%s.%s' % (memory.kind, memory.name))
            names.add(memory.name)
        for block in self.blocks:
            if block.name in names:
                raise ConfigError("Duplicate bank name %r" % block.name,
                    'extra.%s' % block.name)
            names.add(block.name)

        symbols = {}
        for memory in self.memories():
            if memory.symbol in symbols:
                raise ConfigError("Linker name %s collides with %s" % (
                        memory.symbol, symbols[memory.symbol]),
                    '%s.%s' % (memory.kind, memory.name))
            symbols[memory.symbol] = '%s.%s' % (memory.kind, memory.name)

        memories = self.memories()
        for i, memory in enumerate(memories):
            for other in memories[:i]:
                if memory.overlaps(other):
                    raise ConfigError("Memory %#010x-%#010x overlaps "
                        "%s.%s" % (memory.origin, memory.end-1,
                            other.kind, other.name),
                        '%s.%s' % (memory.kind, memory.name))

        banks = {memory.name for memory in self.ram}
        for field, ram in references(self):
            if ram not in banks:
                raise ConfigError("Points to an unknown RAM bank %r" % ram,
                    field)

    def memories(self):
        """ All banks with an address of their own """
        return self.flash + self.ram + self.extra

    def bank(self, name):
        for memory in self.memories():
            if memory.name == name:
                return memory
        raise KeyError(name)

    def primary(self):
        return next((s for s in self.streams if s.primary), None)


def references(layout):
    yield 'data.ram', layout.data.ram
    for stack in layout.stacks:
        yield 'stack.%s.ram' % stack.name, stack.ram
    for heap in layout.heaps:
        yield 'heap.%s.ram' % heap.name, heap.ram
    if layout.streamram is not None:
        yield 'stream.ram', layout.streamram
    for stream in layout.streams:
        yield 'stream.%s.ram' % stream.name, stream.ram
    for block in layout.blocks:
        yield 'extra.%s.ram' % block.name, block.ram

def table(value, field):
    if not isinstance(value, dict):
        raise ConfigError("Expected a table", field)
    return value

def section(config, key, required=False):
    if key not in config:
        if required:
            raise ConfigError("Missing mandatory section %s" % key, key)
        return []
    entries = []
    for name, args in table(config[key], key).items():
        entries.append((name, table(args, '%s.%s' % (key, name))))
    return entries

def checkfields(args, allowed, field):
    for key in args:
        if key not in allowed:
            raise ConfigError("Unknown field",
                '%s.%s' % (field, key) if field else key)

def checkref(args, field):
    if 'ram' not in args:
        raise ConfigError("Missing RAM bank", field + '.ram')
    if not isinstance(args['ram'], str):
        raise ConfigError("Expected a RAM bank name", field + '.ram')
    return args['ram']

def checkaligned(value, field):
    if not isaligned(value):
        raise ConfigError("%s is not word-aligned (%d %% %d == %d)" % (
            field, value, ALIGN, value % ALIGN), field)

def checksize(size, field):
    if size <= 0:
        raise ConfigError("%s must be greater than zero" % field, field)
    checkaligned(size, field)

def parsesection(args, field):
    if 'size' not in args:
        raise ConfigError("Missing size", field + '.size')
    size = Size.parse(args['size'], field + '.size')
    if size.isfixed():
        checksize(size.fixed, field + '.size')
    return size
