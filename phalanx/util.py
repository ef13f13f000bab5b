#!/usr/bin/env python
import atexit
import collections
from contextlib import contextmanager
import logging
import os
import socket
import sys
import threading
import time

import numpy as np

from phalanx.config import FLAGS, BoolFlag

FLAGS.add(BoolFlag('dump_timers', default=False))

HOSTNAME = socket.gethostname()
PID = os.getpid()

LOG_FORMAT = '%(created)f %(hostname)s:%(pid)s %(filename)s:%(lineno)s [%(funcName)s] %(message)s'

logger = logging.getLogger('phalanx')

class _HostFilter(logging.Filter):
  '''Attach host and pid to every record so the format always resolves.'''
  def filter(self, record):
    if not hasattr(record, 'hostname'):
      record.hostname = HOSTNAME
    if not hasattr(record, 'pid'):
      record.pid = PID
    return True

def configure_logging(level=logging.INFO):
  '''Install the phalanx log handler (once) and set the log level.'''
  if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(_HostFilter())
    logger.addHandler(handler)
    logger.propagate = False
  logger.setLevel(level)

def _log(level, args, kw):
  kw['extra'] = {'hostname': HOSTNAME, 'pid': PID}
  # report the caller of log_*, not this helper.
  kw.setdefault('stacklevel', 3)
  logger.log(level, *args, **kw)

def log_debug(*args, **kw):
  _log(logging.DEBUG, args, kw)

def log_info(*args, **kw):
  _log(logging.INFO, args, kw)

def log_warn(*args, **kw):
  _log(logging.WARNING, args, kw)

class TimeHelper(object):
  def __init__(self, timer, name):
    self.timer = timer
    self.name = name

  def __enter__(self):
    self.start = time.time()

  def __exit__(self, exc_type, exc_val, exc_tb):
    end = time.time()
    self.timer.add(self.name, end - self.start)

class Timer(object):
  '''Accumulates wall-clock time per name.

  ::

    with TIMER.gram:
      ...
  '''
  def __init__(self):
    self._times = collections.defaultdict(float)
    self._counts = collections.defaultdict(int)
    self._lock = threading.Lock()

  def add(self, name, t):
    with self._lock:
      self._counts[name] += 1
      self._times[name] += t

  def count(self, name):
    return self._counts[name]

  def dump(self):
    for name, elapsed in sorted(self._times.items()):
      log_info('%s %d %f', name, self._counts[name], elapsed)

  def __getattr__(self, key):
    if key.startswith('_'):
      raise AttributeError(key)
    return TimeHelper(self, key)

TIMER = Timer()
def _dump_timer():
  if FLAGS._parsed and FLAGS.dump_timers:
    TIMER.dump()

atexit.register(_dump_timer)

@contextmanager
def timer_ctx(name='Operation', level=logging.INFO):
  '''Context based timer:

  Usage::

    with timer_ctx('LoopOp'):
      for i in range(10):
        my_op()

  '''
  st = time.time()
  yield
  ed = time.time()
  TIMER.add(name, ed - st)
  _log(level, ('%3.5f:: %s', ed - st, name), {'stacklevel': 4})

class Assert(object):
  '''Assertion helper functions.

  ::

    a = 'foo'
    b = 'bar'

    Assert.eq(a, b)
    # equivalent to:
    # assert a == b, 'a == b failed (%s vs %s)' % (a, b)
  '''

  @staticmethod
  def all_eq(a, b, tolerance=0):
    if isinstance(a, np.ndarray) and isinstance(b, np.ndarray):
      assert a.shape == b.shape, 'Mismatched shapes: %s %s' % (a.shape, b.shape)
      if tolerance == 0:
        assert np.all(a == b), 'Failed: \n%s\n ==\n%s' % (a, b)
      else:
        assert np.all(np.abs(a - b) < tolerance), 'Failed: \n%s\n ==\n%s' % (a, b)
      return

    if np.isscalar(a) or np.isscalar(b):
      if tolerance == 0:
        assert a == b, 'Failed: \n%s\n ==\n%s' % (a, b)
      else:
        assert abs(a - b) < tolerance, 'Failed: \n%s\n ==\n%s' % (a, b)
      return

    assert is_iterable(a), (a, b)
    assert is_iterable(b), (a, b)

    for i, j in zip(a, b):
      assert i == j, 'Failed: \n%s\n ==\n%s' % (a, b)

  @staticmethod
  def all_close(a, b, rtol=1e-05, atol=1e-08):
    assert isinstance(a, np.ndarray) and isinstance(b, np.ndarray)
    assert a.shape == b.shape, 'Mismatched shapes: %s %s' % (a.shape, b.shape)
    assert np.allclose(a, b, rtol=rtol, atol=atol), 'Failed: \n%s close to \n%s' % (a, b)

  @staticmethod
  def eq(a, b, fmt='', *args):
    assert a == b, 'Failed: %s == %s (%s)' % (a, b, fmt % args)

  @staticmethod
  def ne(a, b, fmt='', *args):
    assert a != b, 'Failed: %s != %s (%s)' % (a, b, fmt % args)

  @staticmethod
  def gt(a, b, fmt='', *args):
    assert a > b, 'Failed: %s > %s (%s)' % (a, b, fmt % args)

  @staticmethod
  def lt(a, b, fmt='', *args):
    assert a < b, 'Failed: %s < %s (%s)' % (a, b, fmt % args)

  @staticmethod
  def le(a, b, fmt='', *args):
    assert a <= b, 'Failed: %s <= %s (%s)' % (a, b, fmt % args)

  @staticmethod
  def true(expr):
    assert expr, 'Failed: %s == True' % (expr)

  @staticmethod
  def isinstance(expr, klass):
    assert isinstance(expr, klass), 'Failed: isinstance(%s, %s) [type = %s]' % (expr, klass, type(expr))

  @staticmethod
  def raises_exception(exception, function, *args, **kwargs):
    try:
      function(*args, **kwargs)
    except exception:
      return
    assert False, '%s expected, no error was raised.' % exception.__name__

def is_iterable(x):
  return hasattr(x, '__iter__')
