#
# Command-line interface tests
#
# Copyright (c) 2020, Arm Limited. All rights reserved.
# SPDX-License-Identifier: BSD-3-Clause
#

import pytest
import os
import sys
import subprocess

ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), '..'))
STM32 = os.path.join(ROOT, 'examples', 'stm32', 'layout.toml')

def memlayout(*args, **kwargs):
    env = dict(os.environ)
    env['PYTHONPATH'] = os.pathsep.join(
        [ROOT] + ([env['PYTHONPATH']] if env.get('PYTHONPATH') else []))
    return subprocess.run([sys.executable, '-m', 'memlayout'] + list(args),
        env=env, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
        universal_newlines=True, **kwargs)

def test_sanity():
    assert memlayout().returncode == 0

def test_outputs():
    proc = memlayout('outputs')
    assert proc.returncode == 0
    assert 'available outputs:' in proc.stdout
    assert 'ld' in proc.stdout
    assert 'toml' in proc.stdout

def test_layout():
    proc = memlayout('layout', '-c', STM32)
    assert proc.returncode == 0, proc.stderr
    assert 'ram.main' in proc.stdout
    assert 'stack.core0' in proc.stdout
    assert '0x20003ef0-0x20004eef 4096 bytes' in proc.stdout

def test_layout_measured():
    # without program sizes .data takes what the fixed sections leave
    proc = memlayout('layout', '-c', STM32)
    assert proc.returncode == 0, proc.stderr
    assert '0x20000000-0x20003eef 16112 bytes' in proc.stdout

    proc = memlayout('layout', '-c', STM32, '--bss-size', '0')
    assert proc.returncode == 0, proc.stderr
    assert '0x20000000-0x20000fff 4096 bytes' in proc.stdout

def test_layout_second_stage():
    proc = memlayout('layout', '-c', STM32, '-s', 'second',
        '--data-size', '1K', '--bss-size', '0x100')
    assert proc.returncode == 0, proc.stderr
    assert 'second stage' in proc.stdout
    assert '0x20004000-0x20004fff 4096 bytes' in proc.stdout

def test_heaps():
    proc = memlayout('heaps', '-c', STM32)
    assert proc.returncode == 0, proc.stderr
    assert 'heap core0' in proc.stdout
    assert 'headroom' in proc.stdout

def test_build(tmp_path):
    ld = str(tmp_path / 'memory.ld')
    toml_ = str(tmp_path / 'layout.resolved.toml')
    proc = memlayout('build', '-c', STM32, '--ld', ld, '--toml', toml_)
    assert proc.returncode == 0, proc.stderr
    assert 'generating ld %s' % ld in proc.stdout
    assert 'generating toml %s' % toml_ in proc.stdout
    with open(ld) as f:
        assert 'MEMORY {' in f.read()
    assert os.path.isfile(toml_)

def test_missing_config(tmp_path):
    proc = memlayout('layout', '-c', str(tmp_path / 'layout.toml'))
    assert proc.returncode == 1
    assert proc.stderr.startswith('memlayout: error:')

def test_invalid_config(tmp_path):
    path = tmp_path / 'layout.toml'
    path.write_text('[flash]\nprogram = { origin = 0x08000000 }\n')
    proc = memlayout('layout', '-c', str(path))
    assert proc.returncode == 1
    assert 'flash.program.size' in proc.stderr

def test_overflow(tmp_path):
    with open(STM32) as f:
        config = f.read().replace('size = "4K"', 'size = "32K"')
    path = tmp_path / 'layout.toml'
    path.write_text(config)
    for stage in ['first', 'second']:
        proc = memlayout('layout', '-c', str(path), '-s', stage)
        assert proc.returncode == 1
        assert proc.stderr.startswith(
            'memlayout: error: %s stage: Not enough memory' % stage)

def test_invalid_size():
    proc = memlayout('layout', '-c', STM32, '--data-size', 'lots')
    assert proc.returncode == 2
