'''Row extents and partitioning tags.

A partitioned matrix is split into row blocks.  The *partitioning tag*
records exactly how: the number of partitions and, for each partition, the
ordered sequence of global row keys it holds.  Two matrices with equal tags
can be combined block by block with no data movement.

Tags compare structurally, so a tag rebuilt from the same split is equal to
the original one; identity of the objects involved does not matter.
'''
import numpy as np

from .. import util


def compute_splits(nrow, num_partitions):
  '''Split ``nrow`` rows into at most ``num_partitions`` contiguous ranges.

  Ranges are as even as possible; the first ``nrow % num_partitions`` ranges
  get one extra row.  Empty ranges are never produced.

  Returns:
    list: (start, stop) pairs.
  '''
  util.Assert.gt(num_partitions, 0)
  num_partitions = max(1, min(num_partitions, nrow))
  base, extra = divmod(nrow, num_partitions)
  splits = []
  start = 0
  for i in range(num_partitions):
    stop = start + base + (1 if i < extra else 0)
    splits.append((start, stop))
    start = stop
  return splits


def _frozen_keys(keys):
  keys = np.array(keys, dtype=np.int64).reshape(-1)
  keys.setflags(write=False)
  return keys


class PartitioningTag(object):
  '''Immutable identifier of a row-block split scheme.'''
  __slots__ = ('_keys', '_hash')

  def __init__(self, partition_keys):
    object.__setattr__(self, '_keys', tuple(_frozen_keys(k) for k in partition_keys))
    object.__setattr__(self, '_hash', None)

  def __setattr__(self, key, value):
    raise AttributeError('PartitioningTag is immutable')

  @property
  def num_partitions(self):
    return len(self._keys)

  @property
  def partition_keys(self):
    return self._keys

  @property
  def sizes(self):
    return tuple(len(k) for k in self._keys)

  @property
  def nrow(self):
    return sum(self.sizes)

  def keys_for(self, idx):
    return self._keys[idx]

  def __eq__(self, other):
    if self is other:
      return True
    if not isinstance(other, PartitioningTag):
      return NotImplemented
    if self.sizes != other.sizes:
      return False
    return all(np.array_equal(a, b) for a, b in zip(self._keys, other._keys))

  def __ne__(self, other):
    eq = self.__eq__(other)
    if eq is NotImplemented:
      return eq
    return not eq

  def __hash__(self):
    if self._hash is None:
      h = hash(tuple((len(k), k.tobytes()) for k in self._keys))
      object.__setattr__(self, '_hash', h)
    return self._hash

  def __repr__(self):
    return 'PartitioningTag(num_partitions=%d, sizes=%s)' % (self.num_partitions, self.sizes)


def tag_for_splits(splits):
  '''Build the tag of a contiguous split produced by `compute_splits`.'''
  return PartitioningTag([np.arange(st, ed) for st, ed in splits])
