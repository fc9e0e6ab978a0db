from .. import outputs
from ..size import formatsize
import textwrap

# sections the linker must drop, per platform
DISCARD = {
    'arm': [
        '*(.ARM.exidx .ARM.exidx.*)',
        '*(.ARM.extab .ARM.extab.*)',
        '*(.ARM.attributes)',
    ],
    'riscv': [
        '*(.riscv.attributes)',
        '*(.eh_frame .eh_frame_hdr)',
    ],
}

@outputs.output
class LdOutput(outputs.Output):
    """
    Name of file to target for a linkerscript.
    """
    __argname__ = "ld"
    __arghelp__ = __doc__

    def __init__(self, path=None):
        super().__init__(path)
        self.decls = outputs.OutputField(self)
        self.memories = outputs.OutputField(self,
            indent=4,
            memory=None,
            addr=0,
            length=0)
        self.sections = outputs.OutputField(self,
            indent=4,
            section=None,
            memory=None,
            align=4)

    @staticmethod
    def repr_memory(memory):
        return ('%%(MEMORY)-16s (%(MODE)-3s) : '
            'ORIGIN = %%(addr)#010x, '
            'LENGTH = %%(length)s' % dict(
                MODE=memory.mode.upper()))

    def build_text(self, document):
        program = document.program()

        out = self.sections.append(
            section='.vtable',
            memory=program.name)
        out.printf('%(section)s ORIGIN(%(MEMORY)s) : {')
        with out.pushindent():
            out.printf('KEEP(*(%(section)s))')
        out.printf('} > %(MEMORY)s')

        out = self.sections.append(
            section='.text',
            memory=program.name)
        out.printf('%(section)s : ALIGN(%(align)d) {')
        with out.pushindent():
            out.printf('__text_start = .;')
            out.printf('*(.text .text.*)')
            out.printf('KEEP(*(SORT_NONE(.init)))')
            out.printf('KEEP(*(SORT_NONE(.fini)))')
            out.printf('. = ALIGN(%(align)d);')
            out.printf('__text_end = .;')
        out.printf('} > %(MEMORY)s')

        out = self.sections.append(
            section='.rodata',
            memory=program.name)
        out.printf('%(section)s : ALIGN(%(align)d) {')
        with out.pushindent():
            out.printf('*(.rodata .rodata.*)')
            out.printf('. = ALIGN(4);')
            out.printf('PROVIDE_HIDDEN(__init_array_start = .);')
            out.printf('KEEP(*(SORT(.init_array.*)))')
            out.printf('KEEP(*(.init_array))')
            out.printf('PROVIDE_HIDDEN(__init_array_end = .);')
        out.printf('} > %(MEMORY)s')

        # pool tables are read by the allocator at boot, in declared order
        if document.heaps:
            out = self.sections.append(
                section='.heap_table',
                memory=program.name)
            out.printf('%(section)s : ALIGN(%(align)d) {')
            with out.pushindent():
                for heap in document.heaps:
                    out.printf('__heap_%(heap)s_table = .;', heap=heap.name)
                    for pool in heap.pools:
                        out.printf('/* block=%(block)s count=%(count)d */',
                            block=formatsize(pool.block), count=pool.count)
                        out.printf('LONG(%(origin)#010x) '
                            'LONG(%(block)#010x) '
                            'LONG(%(edge)#010x) '
                            'LONG(%(uninit)#010x)',
                            origin=pool.origin,
                            block=pool.block,
                            edge=pool.edge,
                            uninit=pool.uninit)
                    out.printf('__heap_%(heap)s_table_end = .;',
                        heap=heap.name)
            out.printf('} > %(MEMORY)s')

    def build_data(self, document, section):
        program = document.program()
        out = self.sections.append(
            section='.data',
            memory=section.memory,
            initmemory=program.name,
            addr=section.origin,
            end=section.origin + section.size)
        out.printf('%(section)s %(addr)#010x : ALIGN(%(align)d) {')
        with out.pushindent():
            out.printf('__data_start = .;')
            out.printf('*(.data .data.*)')
            out.printf('. = ALIGN(%(align)d);')
            out.printf('__data_end = .;')
        out.printf('} > %(MEMORY)s AT > %(INITMEMORY)s')
        out.printf('__data_load = LOADADDR(%(section)s);')
        out.printf()
        out.printf('.bss (NOLOAD) : ALIGN(%(align)d) {')
        with out.pushindent():
            out.printf('__bss_start = .;')
            out.printf('*(.bss .bss.*)')
            out.printf('*(COMMON)')
            out.printf('. = ALIGN(%(align)d);')
            out.printf('__bss_end = .;')
        out.printf('} > %(MEMORY)s')
        out.printf('ASSERT(__bss_end <= %(end)#010x,')
        out.printf('    "Not enough memory in %(MEMORY)s for data and bss")')

    def build_section(self, document, section):
        out = self.sections.append(
            section=section.name,
            memory=section.memory,
            symbol=section.name.lstrip('.'),
            addr=section.origin,
            size=section.size,
            noload=' (NOLOAD)' if section.noload else '')
        out.printf('%(section)s %(addr)#010x%(noload)s : {')
        with out.pushindent():
            out.printf('__%(symbol)s_start = .;')
            out.printf('KEEP(*(%(section)s))')
            out.printf('. = __%(symbol)s_start + %(size)#x;')
            out.printf('__%(symbol)s_end = .;')
        out.printf('} > %(MEMORY)s')

    def build(self, document):
        self.decls.append('ENTRY(%(entry)s)', entry=document.entry)

        if document.stack_pointers:
            out = self.decls.append(doc='initial stack pointers')
            for sp in document.stack_pointers:
                out.printf('%(symbol)-24s = %(addr)#010x;',
                    symbol='__stack_%s_end' % sp.name.lower(),
                    addr=sp.address)

        primary = next((s for s in document.streams if s.primary), None)
        if primary:
            self.decls.append('%(symbol)-24s = %(addr)#010x;',
                doc='boot-time diagnostic stream buffer',
                symbol='__stream_primary', addr=primary.origin)

        for memory in document.memories:
            self.memories.append(
                self.repr_memory(memory),
                memory=memory.name,
                addr=memory.origin,
                length=formatsize(memory.length))

        self.build_text(document)
        for section in document.sections:
            if section.kind == 'data':
                self.build_data(document, section)
            else:
                self.build_section(document, section)

        self.write_script(document)

    def write_script(self, document):
        self.print('/***** AUTOGENERATED *****/')
        self.print('/* %s, %s stage */' % (document.platform,
            document.stage))
        self.print()

        for include in document.include_before:
            self.print('INCLUDE %s' % include)
        if document.include_before:
            self.print()

        for decl in self.decls:
            if 'doc' in decl:
                for line in textwrap.wrap(decl['doc'], width=71):
                    self.print('/* %s */' % line)
            self.print(decl.getvalue().strip())
            self.print()

        self.print('MEMORY {')
        # order memories based on address
        for memory in sorted(self.memories, key=lambda m: m['addr']):
            self.print(4*' ' + str(memory).strip())
        self.print('}')
        self.print()

        self.print('SECTIONS {')
        # order sections based on memories' address
        for memory in sorted(self.memories, key=lambda m: m['addr']):
            sections = [section for section in self.sections
                if section['memory'] == memory['memory']]
            if not sections:
                continue
            self.print(4*' ' + '/* %s sections */' % memory['memory'])
            for section in sections:
                self.print(section.getvalue().rstrip())
                self.print()

        self.print(4*' ' + '/DISCARD/ : {')
        for rule in DISCARD[document.platform]:
            self.print(8*' ' + rule)
        self.print(4*' ' + '}')
        self.print('}')

        if document.include_after:
            self.print()
        for include in document.include_after:
            self.print('INCLUDE %s' % include)
