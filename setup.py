from setuptools import setup

setup(
    name='memlayout',
    version='0.1dev',
    packages=['memlayout', 'memlayout.outputs'],
    install_requires=[
        'toml>=0.10'
    ],
    extras_require={
        'test': ['pytest'],
    },
    python_requires='>=3.6',
    #long_description=open('README.md').read()
    entry_points={
        'console_scripts': [
            'memlayout=memlayout.__main__:main'
        ]
    })
