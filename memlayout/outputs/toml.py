#
# TOML outputer
#
# Copyright (c) 2020, Arm Limited. All rights reserved.
# SPDX-License-Identifier: BSD-3-Clause
#
from .. import outputs
import toml

@outputs.output
class TomlOutput(outputs.Output):
    """
    Name of file to target for the resolved layout, every range and every
    pool count in TOML.
    """
    __argname__ = "toml"
    __arghelp__ = __doc__

    def build(self, document):
        resolved = {
            'platform': document.platform,
            'stage': str(document.stage),
            'entry': document.entry,
        }

        resolved['memory'] = {
            memory.name: {
                'kind': memory.kind,
                'mode': memory.mode,
                'origin': memory.origin,
                'length': memory.length,
            }
            for memory in document.memories}

        resolved['section'] = {
            section.name.lstrip('.'): {
                'memory': section.memory,
                'origin': section.origin,
                'size': section.size,
            }
            for section in document.sections}

        if document.stack_pointers:
            resolved['stack'] = {
                sp.name.lower(): {'end': sp.address}
                for sp in document.stack_pointers}

        if document.streams:
            resolved['stream'] = {
                stream.name: {
                    'origin': stream.origin,
                    'size': stream.size,
                    'init-primary': stream.primary,
                }
                for stream in document.streams}

        if document.heaps:
            resolved['heap'] = {
                heap.name: {
                    'origin': heap.origin,
                    'size': heap.size,
                    'used': heap.used,
                    'headroom': heap.headroom,
                    'pools': [dict(pool._asdict()) for pool in heap.pools],
                }
                for heap in document.heaps}

        self.print('# AUTOGENERATED')
        self.write(toml.dumps(resolved))
