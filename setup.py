#!/usr/bin/env python

from setuptools import setup

setup(
  name='phalanx',
  version='0.1',
  description='Stochastic SVD, PCA and thin QR of row-partitioned matrices.',
  python_requires='>=3.9',
  install_requires=[
    'appdirs',
    'numpy',
    'psutil',
    'scipy',
    'traits>=6.1',
  ],
  extras_require={
    'test': ['pytest'],
  },
  classifiers=[
    'Development Status :: 4 - Beta',
    'Environment :: Other Environment',
    'Intended Audience :: Developers',
    'Intended Audience :: Science/Research',
    'License :: OSI Approved :: BSD License',
    'Operating System :: POSIX',
    'Programming Language :: Python :: 3',
    'Topic :: Scientific/Engineering :: Mathematics',
  ],
  package_dir={'': '.'},
  packages=['phalanx',
            'phalanx.array',
            'phalanx.decomp'],
)
