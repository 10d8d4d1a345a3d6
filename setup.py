"""
Setup script for Link Monitor.

Usage:
    pip install -e .[test]

Installs the ``link-monitor`` command.
"""
from setuptools import find_packages, setup

setup(
    name='link-monitor',
    version='1.0.0',
    description='Headless network link monitor: ping gaps, packet loss and speedtests',
    python_requires='>=3.8',
    packages=find_packages(exclude=['tests', 'tests.*']),
    py_modules=['link_monitor'],
    install_requires=[
        'numpy',
        'psutil',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'link-monitor=link_monitor:main',
        ],
    },
)
