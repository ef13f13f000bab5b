#!/usr/bin/env python

"""
Configuration options and flags.

Options may be specified on the command line, or via a configuration
file.  Configuration files should be placed in $HOME/.config/phalanx/phalanx.ini,
with flag values listed under a ``[flags]`` section.

To facilitate changing options when running under a test runner, flag values
are also parsed out from the PHALANX_OPTS environment variable.

::

    PHALANX_OPTS='--num_workers=4 --log_level=DEBUG' pytest tests

"""
import argparse
import configparser
import logging
import os
import sys

import appdirs
import psutil


class Flag(object):
  '''Base object for a representing a command line flag.

  Subclasses must implement the ``parse`` operation to parse
  a flag value from a command line string.
  '''
  def __init__(self, name, default=None, help=''):
    self.name = name
    self.default = default
    self.val = default
    self.help = help

  def __repr__(self):
    return '--%s=%s' % (self.name, self._str())

  def __lt__(self, other):
    return self.name < other.name

  def _str(self):
    return str(self.val)


class IntFlag(Flag):
  def parse(self, str):
    self.val = int(str)


class FloatFlag(Flag):
  def parse(self, str):
    self.val = float(str)


class StrFlag(Flag):
  def parse(self, str):
    self.val = str


class BoolFlag(Flag):
  '''Boolean flag.

  Accepts '0' or 'false' for false values, '1' or 'true' for true values.
  '''
  def parse(self, str):
    str = str.lower()
    str = str.strip()

    if str == 'false' or str == '0': val = False
    elif str == 'true' or str == '1': val = True
    else:
      raise ValueError('Invalid value for boolean flag: "%s"' % str)

    self.val = val

  def _str(self):
    return str(int(self.val))


LOG_STR = {logging.DEBUG: 'DEBUG',
           logging.INFO: 'INFO',
           logging.WARNING: 'WARNING',
           logging.ERROR: 'ERROR',
           logging.CRITICAL: 'CRITICAL'}


class LogLevelFlag(Flag):
  def parse(self, str):
    self.val = getattr(logging, str.upper())

  def _str(self):
    return LOG_STR[self.val]


class Flags(object):
  def __init__(self):
    self._parsed = False
    self._vals = {}

  def add(self, flag):
    self._vals[flag.name] = flag

  def __getattr__(self, key):
    if key.startswith('_'): return self.__dict__[key]

    assert self.__dict__['_parsed'], 'Access to flags before config.parse() called.'
    return self.__dict__['_vals'][key].val

  def __setattr__(self, key, value):
    if key.startswith('_'):
      self.__dict__[key] = value
      return

    assert self.__dict__['_parsed'], 'Access to flags before config.parse() called.'
    self.__dict__['_vals'][key].val = value

  def __repr__(self):
    return ' '.join([repr(f) for f in sorted(self._vals.values())])

  def __str__(self):
    return repr(self)

  def __iter__(self):
    return iter(list(self._vals.items()))

  def reset(self):
    '''Restore every flag to its default and mark the flags unparsed.'''
    for flag in self._vals.values():
      flag.val = flag.default
    self._parsed = False


FLAGS = Flags()

FLAGS.add(BoolFlag('print_options', default=False))
FLAGS.add(LogLevelFlag('log_level', logging.INFO))
FLAGS.add(IntFlag('num_workers', default=psutil.cpu_count(logical=False) or 1,
                  help='Number of worker threads; also the default partition count'))
FLAGS.add(IntFlag('default_oversampling', default=15,
                  help='Oversampling p used when a decomposition call does not give one'))
FLAGS.add(FloatFlag('rank_tolerance', default=1e-7,
                    help='Smallest diag(L) / max diag(L) accepted by thin QR rank checks'))
FLAGS.add(StrFlag('omega_distribution', default='uniform',
                  help='Distribution of random projections (uniform, gaussian)'))

# print flags in sorted order
# from http://stackoverflow.com/questions/12268602/sort-argparse-help-alphabetically
from argparse import HelpFormatter
from operator import attrgetter


class SortingHelpFormatter(HelpFormatter):
  def add_arguments(self, actions):
    actions = sorted(actions, key=attrgetter('option_strings'))
    super(SortingHelpFormatter, self).add_arguments(actions)


def config_file_path():
  return os.path.join(appdirs.user_config_dir('phalanx'), 'phalanx.ini')


def parse(argv):
  '''Parse configuration from flags and/or configuration file.'''

  # load flags defined in other modules
  import phalanx.util

  if FLAGS._parsed:
    return

  FLAGS._parsed = True
  argv = list(argv)

  config_file = config_file_path()
  if os.path.exists(config_file):
    sys.stderr.write('Loading configuration from %s\n' % config_file)

    # Prepend configuration options to the flags array so that they
    # are overridden by user flags.
    config = configparser.ConfigParser()
    try:
      config.read(config_file)
    except configparser.Error:
      FLAGS._parsed = False
      raise

    if config.has_section('flags'):
      for name, value in config.items('flags'):
        argv.insert(0, '--%s=%s' % (name, value))

  parser = argparse.ArgumentParser(formatter_class=SortingHelpFormatter)

  for name, flag in FLAGS:
    parser.add_argument('--' + name, type=str, help=flag.help)

  if os.getenv('PHALANX_OPTS'):
    argv += os.getenv('PHALANX_OPTS').split()

  parsed_flags, rest = parser.parse_known_args(argv)
  for name, flag in FLAGS:
    if getattr(parsed_flags, name) is not None:
      flag.parse(getattr(parsed_flags, name))

  phalanx.util.configure_logging(FLAGS.log_level)

  for f in rest:
    if f.startswith('-'):
      sys.stderr.write('>>> Unknown flag: %s (ignored)\n' % f)

  if FLAGS.print_options:
    print('Configuration status:')
    for name, flag in sorted(FLAGS):
      print('  >> ', name, '\t', flag.val)

  return rest
