import sys
import os.path
import argparse
import logging
import collections as co
import textwrap
import re
from .memory import Layout, LAYOUT_CONFIG
from .assemble import assemble, Stage, BuildInfo
from .emit import emit
from .errors import ConfigError, LayoutError
from .size import parsesize, formatsize, formataddr
from . import outputs

COMMANDS = co.OrderedDict()
def command(cls):
    assert cls.__argname__ not in COMMANDS
    COMMANDS[cls.__argname__] = cls
    return cls

def layout_argparse(cls, parser):
    parser.add_argument('-c', '--config', default=LAYOUT_CONFIG,
        help="Path to the layout description. Defaults to %s."
            % LAYOUT_CONFIG)
    parser.add_argument('-s', '--stage', default=str(Stage.FIRST),
        choices=[str(stage) for stage in Stage],
        help="Linking stage to compile. The first stage grows up from the "
            "start of RAM, the second stage grows down from the end of RAM. "
            "Defaults to %s." % Stage.FIRST)
    parser.add_argument('--data-size', type=buildsize,
        help="Size of .data in the linked program. Without it or "
            "--bss-size the program is being measured and .data takes all "
            "free RAM in its bank.")
    parser.add_argument('--bss-size', type=buildsize,
        help="Size of .bss in the linked program, if known.")

def buildsize(s):
    try:
        return parsesize(s)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e))

def compile_(config, stage, data_size=None, bss_size=None):
    layout = Layout.load(config)
    build = None
    if data_size is not None or bss_size is not None:
        build = BuildInfo(data_size or 0, bss_size or 0)
    return assemble(layout, Stage(stage), build)

@command
class LayoutCommand:
    """
    Show the address map of a stage as specified by the layout description.
    """
    __argname__ = "layout"
    __arghelp__ = __doc__
    @classmethod
    def __argparse__(cls, parser):
        layout_argparse(cls, parser)
    def __init__(self, config, stage, data_size=None, bss_size=None):
        document = compile_(config, stage, data_size, bss_size)

        print('layout %s (%s, %s stage)' % (
            os.path.basename(config), document.platform, document.stage))
        for memory in document.memories:
            print('  %(name)-34s %(memory)s' % dict(
                name='%s.%s' % (memory.kind, memory.name), memory=memory))
            for range_ in document.inbank(memory.name):
                print('    %(name)-32s %(range_)s' % dict(
                    name=range_.name, range_=range_))

@command
class HeapsCommand:
    """
    Show the pool tables of every heap as specified by the layout
    description.
    """
    __argname__ = "heaps"
    __arghelp__ = __doc__
    @classmethod
    def __argparse__(cls, parser):
        layout_argparse(cls, parser)
    def __init__(self, config, stage, data_size=None, bss_size=None):
        document = compile_(config, stage, data_size, bss_size)

        for heap in document.heaps:
            print('heap %s' % heap.name)
            print('  %(name)-34s %(origin)#010x-%(end)#010x %(size)d bytes' % dict(
                name='ram.%s' % heap.bank,
                origin=heap.origin,
                end=heap.origin+heap.size-1 if heap.size else heap.origin,
                size=heap.size))
            for pool in heap.pools:
                print('  %(name)-34s %(origin)s %(count)6d x %(block)s' % dict(
                    name='pool.%s' % formatsize(pool.block),
                    origin=formataddr(pool.origin),
                    count=pool.count,
                    block=formatsize(pool.block)))
            print('  %(name)-34s %(headroom)d bytes' % dict(
                name='headroom', headroom=heap.headroom))

@command
class BuildCommand:
    """
    Build the linker files for a stage as specified by the layout
    description and the output options.
    """
    __argname__ = "build"
    __arghelp__ = __doc__
    @classmethod
    def __argparse__(cls, parser):
        layout_argparse(cls, parser)
        for Output in outputs.OUTPUTS.values():
            parser.add_argument('--%s' % Output.__argname__,
                metavar='PATH',
                help=re.sub(r'\s+', ' ', Output.__arghelp__.strip()))
    def __init__(self, config, stage, data_size=None, bss_size=None, **args):
        paths = co.OrderedDict(
            (name, args.get(name)) for name in outputs.OUTPUTS
            if args.get(name))
        if not paths:
            paths['ld'] = os.path.join(os.path.dirname(config),
                'memory.ld')

        document = emit(compile_(config, stage, data_size, bss_size))
        for name, path in paths.items():
            print('generating %(output)s %(path)s' % dict(
                output=name, path=path))
            outputs.write(outputs.render(document, name), path)

@command
class OutputsCommand:
    """
    List the available outputs and their help text.
    """
    __argname__ = "outputs"
    __arghelp__ = __doc__
    def __init__(self):
        print("available outputs:")
        for Output in outputs.OUTPUTS.values():
            if len(Output.__argname__) > 19:
                print(4*' '+Output.__argname__)
            for i, line in enumerate(textwrap.wrap(
                    re.sub(r'\s+', ' ', Output.__arghelp__.strip()),
                    width=78-24)):
                print(4*' '+'%(name)-19s %(line)s' % dict(
                    name=Output.__argname__
                        if len(Output.__argname__) <= 19 and i == 0 else
                        '',
                    line=line))


def main():
    parser = argparse.ArgumentParser(prog='memlayout',
        description="A tool for compiling the memory layout of a "
            "microcontroller firmware into linker scripts.")
    parser.add_argument('-v', '--verbose', action='store_true',
        help="Show placement and headroom diagnostics.")
    subparsers = parser.add_subparsers(title="subcommand", dest="command",
        help="Command to run.")
    for name, command in COMMANDS.items():
        subparser = subparsers.add_parser(name,
            help=getattr(command, '__arghelp__', None),
            aliases=getattr(command, '__argaliases__', []))
        subparser.set_defaults(command=command)
        if hasattr(command, '__argparse__'):
            command.__argparse__(subparser)

    args = parser.parse_args()
    if not args.command:
        parser.parse_args(['-h'])

    logging.basicConfig(
        format='%(levelname)s: %(message)s',
        level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        args.command(**{
            k: v for k, v in args.__dict__.items()
            if k not in ('command', 'verbose')})
    except (ConfigError, LayoutError, OSError) as e:
        print('%s: error: %s' % (parser.prog, e), file=sys.stderr)
        sys.exit(1)
    sys.exit(0)

if __name__ == "__main__":
    main()
