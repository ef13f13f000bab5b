'''
The `BlobCtx` manages the state of a phalanx execution: it owns the pool of
workers that run *kernel functions* on partition data, and implements the
two communication patterns the decompositions need:

  * ``map``: run a function on every partition, results returned in
    partition order;
  * ``all_reduce``: run a function on every partition and combine the small
    local results into one value with a fixed binary reduction tree.

Workers are threads in the current process.  numpy and scipy release the GIL
inside their kernels, so block-local multiplies and solves run in parallel.

Every `DistMatrix` carries the context that created it; the decompositions
never consult the module-level default context.
'''

from concurrent.futures import ThreadPoolExecutor
import threading

from . import util
from .errors import AggregationFailure


class BlobCtx(object):
  def __init__(self, num_workers):
    '''
    Create a new context.

    Args:
      num_workers (int): Number of worker threads.
    '''
    util.Assert.gt(num_workers, 0)
    self.num_workers = num_workers
    self.active = True
    self._pool = ThreadPoolExecutor(max_workers=num_workers,
                                    thread_name_prefix='phalanx-worker')
    self._lock = threading.Lock()
    self.barrier_count = 0

  def __repr__(self):
    return 'BlobCtx(num_workers=%d, active=%s)' % (self.num_workers, self.active)

  def _check_active(self):
    if not self.active:
      raise RuntimeError('Context has been shut down.')

  def map(self, fn, items):
    '''
    Run ``fn`` on every element of ``items`` using the worker pool.

    Results are returned in the order of ``items``.  If a task fails, the
    exception of the first failing item (in item order) is re-raised.

    Args:
      fn (function): item -> result
      items (list):
    '''
    self._check_active()
    futures = [self._pool.submit(fn, item) for item in items]
    return [f.result() for f in futures]

  def reduce_tree(self, values, combine):
    '''
    Combine ``values`` pairwise, level by level, until one value remains.

    The tree shape depends only on ``len(values)``, so a given partitioning
    always combines in the same order.  ``combine`` must be associative and
    commutative.

    Args:
      values (list): Local results, one per partition.
      combine (function): (a, b) -> combined value.
    '''
    util.Assert.gt(len(values), 0, 'Cannot reduce an empty list')
    level = list(values)
    while len(level) > 1:
      pairs = [(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)]
      combined = self.map(lambda ab: combine(ab[0], ab[1]), pairs)
      if len(level) % 2 == 1:
        combined.append(level[-1])
      level = combined
    return level[0]

  def all_reduce(self, items, local_fn, combine):
    '''
    Evaluate ``local_fn`` for each item and combine the results.

    This is the synchronization barrier of a pass: every local value is
    computed and combined before the result is handed back.  Any failure,
    either in a local function or in ``combine``, is raised as
    `AggregationFailure` with the original exception as its cause.

    Args:
      items (list): One entry per partition.
      local_fn (function): item -> small local value.
      combine (function): (a, b) -> value; associative and commutative.
    '''
    self._check_active()
    futures = [self._pool.submit(local_fn, item) for item in items]
    local_values = []
    for idx, f in enumerate(futures):
      try:
        local_values.append(f.result())
      except Exception as ex:
        for pending in futures:
          pending.cancel()
        raise AggregationFailure('Local reduction failed on partition %d: %r' % (idx, ex),
                                 partition=idx) from ex

    try:
      result = self.reduce_tree(local_values, combine)
    except Exception as ex:
      raise AggregationFailure('Combining partial results failed: %r' % (ex,)) from ex

    with self._lock:
      self.barrier_count += 1
    return result

  def shutdown(self, cancel=False):
    '''
    Stop the worker pool.

    Args:
      cancel (boolean): Cancel queued tasks instead of letting them finish.
    '''
    if not self.active:
      return
    self.active = False
    self._pool.shutdown(wait=not cancel, cancel_futures=cancel)


_ctx = None


def get():
  '''Return the default context (created by `phalanx.initialize`).'''
  return _ctx


def set(ctx):
  global _ctx
  _ctx = ctx
