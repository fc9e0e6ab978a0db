"""
Shape a LayoutDocument into what a linker-script renderer needs.

Nothing here formats text. The result is handed as is to an output (see
outputs/) which stamps it into a script for the tagged platform.
"""
import collections as co
from .util import shoutysnake

ENTRY = 'Reset_Handler'

MemoryBlock = co.namedtuple('MemoryBlock', 'name kind mode origin length')
StackPointer = co.namedtuple('StackPointer', 'name address')
SectionDirective = co.namedtuple('SectionDirective',
    'name kind owner memory origin size noload')
StreamDescriptor = co.namedtuple('StreamDescriptor',
    'name origin size primary')


class LinkerDocument(co.namedtuple('LinkerDocument', [
        'platform', 'stage', 'entry', 'memories', 'include_before',
        'include_after', 'stack_pointers', 'sections', 'heaps',
        'streams'])):
    """
    Platform-tagged description of a linker script.
    """
    __slots__ = ()

    def memory(self, name):
        for memory in self.memories:
            if memory.name == name:
                return memory
        raise KeyError(name)

    def program(self):
        """ Flash block holding the program image """
        return next(m for m in self.memories if m.kind == 'flash')

    def section(self, name):
        for section in self.sections:
            if section.name == name:
                return section
        raise KeyError(name)


def sectionname(range_):
    if range_.kind == 'data':
        return '.data'
    elif range_.kind == 'stream-table':
        return '.stream'
    else:
        return '.%s_%s' % (range_.kind, range_.owner.replace('-', '_'))

def emit(document):
    """
    Transform an assembled LayoutDocument into a LinkerDocument.
    """
    memories = tuple(
        MemoryBlock(memory.symbol, memory.kind, memory.mode,
            memory.origin, memory.size)
        for memory in document.memories)
    names = {memory.name: memory.symbol
        for memory in document.memories}

    sections = []
    for range_ in sorted(document.ranges, key=lambda r: (r.start, r.end)):
        sections.append(SectionDirective(
            name=sectionname(range_),
            kind=range_.kind,
            owner=range_.owner,
            memory=names[range_.bank],
            origin=range_.start,
            size=range_.size,
            noload=range_.kind != 'data'))
    # standalone extra blocks get a section of their own
    for memory in document.memories:
        if memory.kind == 'extra':
            sections.append(SectionDirective(
                name='.%s' % memory.name.replace('-', '_'),
                kind='extra',
                owner=memory.name,
                memory=names[memory.name],
                origin=memory.origin,
                size=memory.size,
                noload='w' in memory.mode))

    stack_pointers = tuple(
        StackPointer(shoutysnake(range_.owner), range_.end)
        for range_ in document.ofkind('stack'))

    streams = tuple(
        StreamDescriptor(range_.owner, range_.start, range_.size,
            range_.owner == document.primary)
        for range_ in document.ofkind('stream'))

    return LinkerDocument(
        platform=document.platform,
        stage=document.stage,
        entry=ENTRY,
        memories=memories,
        include_before=document.include_before,
        include_after=document.include_after,
        stack_pointers=stack_pointers,
        sections=tuple(sections),
        heaps=document.heaps,
        streams=streams)
