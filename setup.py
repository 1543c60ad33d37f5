"""
Installs the robotbridge package and the `robotbridge` command.
"""

from setuptools import setup

setup(
    name='robotbridge-connector-py',
    version='0.0.1',
    description='Connects USB attached robots to a block programming server.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    python_requires='>=3.8',
    package_dir={'': 'src'},
    packages=['robotbridge', 'robotbridge.config', 'robotbridge.connector',
              'robotbridge.protocol', 'robotbridge.support'],
    package_data={'robotbridge.config': ['*.cfg']},
    install_requires=[
        'requests',
        'pyserial',
        'configobj',
        'click',
    ],
    extras_require={
        'test': [
            'pytest',
            'PyHamcrest',
            'timeout-decorator',
        ]
    },
    entry_points={
        'console_scripts': [
            'robotbridge = robotbridge.cli:main',
        ]
    },
    zip_safe=False,
)
