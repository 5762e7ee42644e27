#!/usr/bin/env python
# -*- encoding: utf-8 -*-
from setuptools import find_packages
from setuptools import setup

version = "0.1.0"

python_requires = ">=3.8"

install_requires = [
	"click >=7.0",
	"dask[bag,distributed] >=2.0.0",
	"pandas >=1.0,<3",
	"numpy >=1.22",
	"pyarrow",
	"pybedtools",
	"pydantic >=2.0",
]

extras_require = {
	"tests": [
		"pytest"
	],
	"build": [],
}

extras_require['dev'] = extras_require['tests'] + ['black', 'isort', 'flake8']


setup(
    name='hic_skeleton',
    version=version,
    license='MPL 2.0',
    description='Extract discretized interaction skeletons from sparse Hi-C matrices',
    long_description='',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    include_package_data=True,
    zip_safe=False,
    classifiers=[
        # complete classifier list: http://pypi.python.org/pypi?%3Aaction=list_classifiers
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)',
        'Operating System :: Unix',
        'Operating System :: POSIX',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: Implementation :: CPython',
        'Topic :: Scientific/Engineering :: Bio-Informatics',
    ],
    keywords=[
        'hi-c', 'chromatin', 'genomics',
    ],
	python_requires=python_requires,
    install_requires=install_requires,
    tests_require=extras_require['tests'],
    extras_require=extras_require,
    entry_points={
        'console_scripts': [
            'hic_skeleton = hic_skeleton.cli:cli',
        ]
    }
)
