import pytest
import os
import sys
import subprocess

ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), '..'))
EXAMPLES_PATH = os.path.join(ROOT, 'examples')
EXAMPLES = []
for name in os.listdir(EXAMPLES_PATH):
    path = os.path.join(EXAMPLES_PATH, name)
    if (not name.startswith('_') and not name.startswith('.')
            and os.path.isdir(path)):
        EXAMPLES.append((name, path))
EXAMPLES = sorted(EXAMPLES)
EXAMPLES_IDS = list(zip(*EXAMPLES))[0]

def memlayout(*args, cwd):
    env = dict(os.environ)
    env['PYTHONPATH'] = os.pathsep.join(
        [ROOT] + ([env['PYTHONPATH']] if env.get('PYTHONPATH') else []))
    subprocess.check_call([sys.executable, '-m', 'memlayout'] + list(args),
        cwd=cwd, env=env)

@pytest.mark.parametrize('name, path', EXAMPLES, ids=EXAMPLES_IDS)
def test_layout(name, path):
    memlayout('layout', cwd=path)

@pytest.mark.parametrize('name, path', EXAMPLES, ids=EXAMPLES_IDS)
def test_layout_second(name, path):
    memlayout('layout', '-s', 'second', cwd=path)

@pytest.mark.parametrize('name, path', EXAMPLES, ids=EXAMPLES_IDS)
def test_heaps(name, path):
    memlayout('heaps', cwd=path)

@pytest.mark.parametrize('name, path', EXAMPLES, ids=EXAMPLES_IDS)
def test_build(name, path, tmp_path):
    # build artifacts
    memlayout('build', '--ld', str(tmp_path / 'memory.ld'),
        '--toml', str(tmp_path / 'layout.resolved.toml'), cwd=path)
    assert os.path.isfile(str(tmp_path / 'memory.ld'))

# both stages with a realistic program, so we end up with a relocated build
@pytest.mark.parametrize('name, path', EXAMPLES, ids=EXAMPLES_IDS)
def test_build_stages(name, path, tmp_path):
    for stage in ['first', 'second']:
        memlayout('build', '-s', stage,
            '--data-size', '512', '--bss-size', '1K',
            '--ld', str(tmp_path / ('%s.ld' % stage)), cwd=path)
        with open(str(tmp_path / ('%s.ld' % stage))) as f:
            assert '%s stage' % stage in f.read()
