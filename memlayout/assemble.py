"""
Assign concrete address ranges to everything declared in a layout.

Each RAM bank is handled on its own. The constructs living in a bank are
sized first (fixed sizes against the bank, percentages against what the
fixed sizes leave over) and then placed back to back by a cursor. In the
first stage the cursor grows up from the bank origin, in the second stage
it grows down from the bank end so runtime structures sit at the top of RAM
above whatever a stage-two bootloader has claimed.
"""
import enum
import logging
import collections as co
from .errors import LayoutError, BankOverflow
from .memory import STREAM_RUNTIME_SIZE
from .pools import Allocation, Partition, partition
from .size import Size, resolve
from .util import alignup, aligndown

LOG = logging.getLogger(__name__)


class Stage(enum.Enum):
    FIRST = 'first'
    SECOND = 'second'

    def __str__(self):
        return self.value


# placement order of construct kinds inside a bank, per stage
ORDER = {
    Stage.FIRST: ['data', 'stack', 'stream-table', 'stream', 'heap', 'extra'],
    Stage.SECOND: ['stack', 'stream-table', 'stream', 'heap', 'extra', 'data'],
}


class BuildInfo(co.namedtuple('BuildInfo', 'data bss')):
    """
    Sizes the firmware build contributed, in bytes. A program that has not
    been linked yet has no BuildInfo at all, see assemble.
    """
    __slots__ = ()

    @property
    def size(self):
        return self.data + self.bss

BuildInfo.__new__.__defaults__ = (0, 0)


class Range(co.namedtuple('Range', 'name kind owner bank start size')):
    """
    Assigned [start, end) range of a construct inside BANK. OWNER is the
    construct's key in the layout description.
    """
    __slots__ = ()

    @property
    def end(self):
        return self.start + self.size

    def __str__(self):
        return '%#010x-%#010x %d bytes' % (
            self.start, self.end-1 if self.size else self.end, self.size)


class PoolEntry(co.namedtuple('PoolEntry', 'origin block count edge uninit')):
    """
    One row of a heap's runtime pool table. EDGE is the end of the pool's
    block storage, UNINIT the first never-allocated block, which at boot is
    the origin itself.
    """
    __slots__ = ()


class HeapTable(co.namedtuple('HeapTable',
        'name bank origin size pools headroom')):
    __slots__ = ()

    @property
    def used(self):
        return self.size - self.headroom


class LayoutDocument(co.namedtuple('LayoutDocument', [
        'stage', 'platform', 'memories', 'ranges', 'heaps', 'primary',
        'include_before', 'include_after', 'padding'])):
    """
    Final address map of a single stage.
    """
    __slots__ = ()

    def range(self, name):
        for range_ in self.ranges:
            if range_.name == name:
                return range_
        raise KeyError(name)

    def inbank(self, bank):
        return [range_ for range_ in self.ranges if range_.bank == bank]

    def ofkind(self, kind):
        return [range_ for range_ in self.ranges if range_.kind == kind]

    def heap(self, name):
        for heap in self.heaps:
            if heap.name == name:
                return heap
        raise KeyError(name)

    @property
    def headroom(self):
        return sum(heap.headroom for heap in self.heaps)


class Construct(co.namedtuple('Construct', 'name kind owner size')):
    __slots__ = ()


def assemble(layout, stage=Stage.FIRST, build=None):
    """
    Compile LAYOUT into a LayoutDocument for the given STAGE.

    BUILD carries the .data/.bss sizes of the linked program. When it is
    None the program has not been linked yet and the data section takes all
    the space the other fixed sizes leave in its bank, so a first link can
    measure it.
    Any failure raises LayoutError tagged with the stage, there is no
    partial result.
    """
    stage = Stage(stage)
    try:
        ranges = []
        tables = {}
        for bank in layout.ram:
            constructs = gather(layout, bank, stage, build)
            sizes = sizesof(bank, constructs)
            placed = place(bank, constructs, sizes, stage)
            check(bank, placed)
            for range_ in placed:
                LOG.debug("%s stage: %-20s %s in ram.%s",
                    stage, range_.name, range_, bank.name)
            ranges.extend(sorted(placed, key=lambda r: (r.start, r.end)))

            for range_ in placed:
                if range_.kind == 'heap':
                    heap = next(heap for heap in layout.heaps
                        if heap.name == range_.owner)
                    tables[heap.name] = pooltable(heap, range_,
                        measure=build is None
                            and bank.name == layout.data.ram)
    except LayoutError as e:
        if e.stage is None:
            e.stage = stage
        raise

    heaps = tuple(tables[heap.name] for heap in layout.heaps)
    for heap in heaps:
        if heap.headroom:
            LOG.info("%s stage: heap.%s leaves %d of %d bytes unused",
                stage, heap.name, heap.headroom, heap.size)

    primary = layout.primary()
    return LayoutDocument(
        stage=stage,
        platform=layout.linker.platform,
        memories=layout.memories(),
        ranges=tuple(ranges),
        heaps=heaps,
        primary=primary.name if primary else None,
        include_before=layout.linker.include_before,
        include_after=layout.linker.include_after,
        padding=layout.data.padding)

def gather(layout, bank, stage, build):
    """
    Constructs living in BANK, in placement order for STAGE. Without BUILD
    the data section has no size yet, see sizesof.
    """
    constructs = []
    if layout.data.ram == bank.name:
        constructs.append(Construct('data', 'data', 'data',
            Size(fixed=alignup(build.size) + layout.data.padding)
            if build is not None else None))
    for stack in layout.stacks:
        if stack.ram == bank.name:
            constructs.append(Construct('stack.%s' % stack.name, 'stack',
                stack.name, stack.size))
    if layout.streamram == bank.name and layout.streams:
        constructs.append(Construct('stream', 'stream-table', 'stream',
            Size(fixed=STREAM_RUNTIME_SIZE * len(layout.streams))))
    for stream in layout.streams:
        if stream.ram == bank.name:
            constructs.append(Construct('stream.%s' % stream.name, 'stream',
                stream.name, Size(fixed=stream.size)))
    for heap in layout.heaps:
        if heap.ram == bank.name:
            constructs.append(Construct('heap.%s' % heap.name, 'heap',
                heap.name, heap.size))
    for block in layout.blocks:
        if block.ram == bank.name:
            constructs.append(Construct('extra.%s' % block.name, 'extra',
                block.name, block.size))

    order = ORDER[stage]
    return sorted(constructs, key=lambda c: order.index(c.kind))

def sizesof(bank, constructs):
    """
    Resolve every construct's size.

    Fixed sizes are taken as is. A data section of unknown size, as in the
    link that measures the program, takes everything the fixed sizes leave
    over. Stack and extra percentages then share that remainder, and heap
    percentages share what the stacks and extra blocks leave in turn. Every
    percentage is rounded down to a word.
    """
    sizes = {}
    for construct in constructs:
        if construct.size is not None and construct.size.isfixed():
            sizes[construct.name] = resolve(bank.size, construct.size,
                name=construct.name, bank=bank.name)

    remainder = bank.size - sum(sizes.values())
    if remainder < 0:
        raise BankOverflow(bank.name, bank.size - remainder, bank.size)

    for construct in constructs:
        if construct.size is None:
            sizes[construct.name] = aligndown(remainder)
            remainder -= sizes[construct.name]

    for kinds in [('stack', 'extra'), ('heap',)]:
        resolved = {}
        for construct in constructs:
            if (construct.kind in kinds and construct.size is not None
                    and construct.size.isrelative()):
                resolved[construct.name] = aligndown(
                    resolve(remainder, construct.size))
        sizes.update(resolved)
        remainder -= sum(resolved.values())
        if remainder < 0:
            raise BankOverflow(bank.name, bank.size - remainder, bank.size)
    return sizes

def place(bank, constructs, sizes, stage):
    """
    Lay constructs out back to back, growing up from the origin in the first
    stage and down from the end in the second.
    """
    ranges = []
    if stage is Stage.FIRST:
        cursor = bank.origin
        for construct in constructs:
            start = alignup(cursor)
            ranges.append(Range(construct.name, construct.kind,
                construct.owner, bank.name, start, sizes[construct.name]))
            cursor = start + sizes[construct.name]
    else:
        cursor = bank.end
        for construct in constructs:
            start = aligndown(cursor - sizes[construct.name])
            ranges.append(Range(construct.name, construct.kind,
                construct.owner, bank.name, start, sizes[construct.name]))
            cursor = start
    return ranges

def check(bank, ranges):
    """
    Make sure RANGES are disjoint and inside BANK.
    """
    low = min([bank.origin] + [r.start for r in ranges])
    high = max([bank.end] + [r.end for r in ranges])
    overflow = (bank.origin - low) + (high - bank.end)
    if overflow:
        raise BankOverflow(bank.name, bank.size + overflow, bank.size)

    prev = None
    for range_ in sorted(ranges, key=lambda r: (r.start, r.end)):
        if prev is not None and range_.start < prev.end:
            raise BankOverflow(bank.name,
                bank.size + prev.end - range_.start, bank.size)
        prev = range_

def pooltable(heap, range_, measure=False):
    """
    Partition a placed heap and lay its pools out from the heap start.

    With MEASURE the data section has taken the heap's space, every pool
    is left empty.
    """
    if measure:
        part = Partition(range_.size,
            tuple(Allocation(pool.block, 0) for pool in heap.pools))
    else:
        part = partition(range_.size, heap.pools, heap=heap.name)
    entries = []
    pointer = range_.start
    for pool in part.pools:
        entries.append(PoolEntry(
            origin=pointer,
            block=pool.block,
            count=pool.count,
            edge=pointer + pool.size,
            uninit=pointer))
        pointer += pool.size
    return HeapTable(heap.name, range_.bank, range_.start, range_.size,
        tuple(entries), part.headroom)
