#!/usr/bin/env python

'''
Row-partitioned distributed matrices.

A `DistMatrix` is a logical ``m x n`` matrix split into row blocks
(`Tile` objects), each holding the global keys of its rows.  Matrices are
never modified: every operation returns a new matrix.

Derived matrices are lazy.  A matrix produced by ``map_block`` remembers its
parent and the block function, and recomputes its blocks every time a pass
needs them.  ``persist`` returns a handle that caches blocks after the first
evaluation; the decompositions persist their input and the intermediates they
read more than once.

Alignment is the central guarantee: ``map_block`` keeps the partitioning tag
and row order of its input, so any matrix derived from ``A`` that way can be
zipped with ``A`` block by block without moving rows between partitions.
'''

import operator

import numpy as np
import scipy.sparse as sp

from . import extent, tile
from .. import util
from ..errors import PartitionMismatchError
from ..linalg import as_dense


class StorageLevel(object):
  NONE = 0
  MEMORY_ONLY = 1


def _add(a, b):
  '''Sum two partial results; tuples are summed element-wise.'''
  if isinstance(a, tuple):
    return tuple(_add(x, y) for x, y in zip(a, b))
  return operator.add(a, b)


def _check_block(result, src, ncol):
  if sp.issparse(result):
    result = sp.csr_matrix(result)
  else:
    result = np.asarray(result)
    if result.ndim == 1 and ncol == 1:
      result = result.reshape((-1, 1))
  if result.ndim != 2 or result.shape[0] != src.shape[0]:
    raise ValueError('map_block must preserve the rows of a block: got %s for a block of %d rows'
                     % (result.shape, src.shape[0]))
  if result.shape[1] != ncol:
    raise ValueError('map_block returned %d columns, declared ncol=%d' % (result.shape[1], ncol))
  return result


class DistMatrix(object):
  '''
  A matrix split into row blocks distributed over the workers of ``ctx``.

  Attributes:
    ctx (BlobCtx): Context running block computations for this matrix.
    shape (tuple): (nrow, ncol).
    tag (PartitioningTag): Row split scheme.
    storage_level (int): `StorageLevel` of this handle.
  '''
  def __init__(self, ctx, shape, tag, compute, storage_level=StorageLevel.NONE):
    util.Assert.eq(tag.nrow, shape[0], 'tag rows vs shape')
    self.ctx = ctx
    self.shape = tuple(shape)
    self.tag = tag
    self.storage_level = storage_level
    self._compute = compute
    self._tiles = None
    self.eval_count = 0

  @property
  def nrow(self):
    return self.shape[0]

  @property
  def ncol(self):
    return self.shape[1]

  @property
  def num_partitions(self):
    return self.tag.num_partitions

  @property
  def partitioning_tag(self):
    return self.tag

  def __repr__(self):
    return 'DistMatrix(shape=%s, partitions=%d, storage_level=%d)' % (
        self.shape, self.num_partitions, self.storage_level)

  def __len__(self):
    return self.shape[0]

  def tiles(self):
    '''Return the blocks of this matrix, computing them if necessary.'''
    if self._tiles is not None:
      return self._tiles

    tiles = self._compute()
    self.eval_count += 1
    util.Assert.eq(len(tiles), self.num_partitions)
    if self.storage_level != StorageLevel.NONE:
      self._tiles = tiles
    return tiles

  def evaluate(self):
    '''Compute (and, if persisted, cache) the blocks now.'''
    self.tiles()
    return self

  def persist(self, level=StorageLevel.MEMORY_ONLY):
    '''
    Return a handle over the same rows whose blocks are computed once and
    then reused by every later pass.

    The returned matrix has the same tag as this one.  With
    ``StorageLevel.NONE`` the handle recomputes like any lazy matrix.
    '''
    if level == self.storage_level:
      return self
    if self._tiles is not None and level != StorageLevel.NONE:
      tiles = self._tiles
      cached = DistMatrix(self.ctx, self.shape, self.tag, lambda: tiles, level)
      cached._tiles = tiles
      return cached
    return DistMatrix(self.ctx, self.shape, self.tag, self.tiles, level)

  checkpoint = persist

  def unpersist(self):
    '''Drop cached blocks; the next pass recomputes them.'''
    self._tiles = None
    return self

  def map_block(self, fn, ncol=None):
    '''
    Apply ``fn`` to every block, producing a new matrix with the same tag.

    Args:
      fn (function): block -> block with the same number of rows.
      ncol (int): Columns of the result; defaults to ``self.ncol``.
    '''
    if ncol is None:
      ncol = self.ncol
    parent = self

    def _map_tile(t):
      return tile.Tile(t.keys, _check_block(fn(t.data), t.data, ncol))

    def _compute():
      return parent.ctx.map(_map_tile, parent.tiles())

    return DistMatrix(self.ctx, (self.nrow, ncol), self.tag, _compute)

  def all_reduce(self, local_fn, combine=_add):
    '''
    Evaluate ``local_fn`` on every block and combine the results.

    ``combine`` defaults to addition (tuples are summed element-wise) and
    must be associative and commutative.
    '''
    return self.ctx.all_reduce(self.tiles(), lambda t: local_fn(t.data), combine)

  def zip(self, other):
    '''
    Pair the blocks of this matrix with the blocks of ``other``.

    Raises:
      PartitionMismatchError: if the two partitioning tags differ.
    '''
    if self.tag != other.tag:
      raise PartitionMismatchError('Cannot zip %r with %r: partitioning differs (%r vs %r)'
                                   % (self, other, self.tag, other.tag))
    if self.ctx is not other.ctx:
      raise PartitionMismatchError('Cannot zip matrices from different contexts')
    return ZippedMatrix(self, other)

  def collect(self):
    '''
    Materialize the whole matrix as a dense array ordered by row key.

    Only meant for small matrices and for tests.
    '''
    out = np.zeros(self.shape)
    for t in self.tiles():
      if len(t.keys):
        out[t.keys, :] = as_dense(t.data)
    return out

  glom = collect

  # Derived operations

  def times(self, M):
    '''``self * M`` for an in-core matrix ``M`` (row-aligned with self).'''
    M = np.asarray(M)
    util.Assert.eq(self.ncol, M.shape[0], 'inner dimensions')
    return self.map_block(lambda block: block @ M, ncol=M.shape[1])

  def t_times(self, other):
    '''``self' * other`` for a matrix ``other`` aligned with self; in-core result.'''
    return self.zip(other).all_reduce(lambda a, b: as_dense(a.T @ b))

  def gram(self):
    '''``self' * self`` as an in-core ``n x n`` matrix.'''
    return self.all_reduce(lambda block: as_dense(block.T @ block))

  def col_sums(self):
    return self.all_reduce(lambda block: np.asarray(block.sum(axis=0)).reshape(-1))

  def col_means(self):
    if self.nrow == 0:
      return np.zeros(self.ncol)
    return self.col_sums() / float(self.nrow)


class ZippedMatrix(object):
  '''Two matrices with equal tags, processed block pair by block pair.'''
  def __init__(self, left, right):
    self.left = left
    self.right = right
    self.ctx = left.ctx
    self.tag = left.tag

  def _pairs(self):
    return list(zip(self.left.tiles(), self.right.tiles()))

  def map_block(self, fn, ncol):
    '''
    Apply ``fn(left_block, right_block)`` to each pair of blocks; the result
    keeps the shared tag.
    '''
    zipped = self

    def _map_pair(pair):
      a, b = pair
      return tile.Tile(a.keys, _check_block(fn(a.data, b.data), a.data, ncol))

    def _compute():
      return zipped.ctx.map(_map_pair, zipped._pairs())

    return DistMatrix(self.ctx, (self.left.nrow, ncol), self.tag, _compute)

  def all_reduce(self, local_fn, combine=_add):
    return self.ctx.all_reduce(self._pairs(), lambda ab: local_fn(ab[0].data, ab[1].data), combine)


def from_partitions(ctx, partitions, ncol=None):
  '''
  Create a matrix from explicit partitions.

  Args:
    ctx (BlobCtx):
    partitions (list): (keys, block) pairs; the keys of all partitions
      together must be a permutation of ``0 .. nrow - 1``.
    ncol (int): Number of columns; inferred from the first block if None.
  '''
  tiles = [tile.from_data(np.asarray(keys, dtype=np.int64), block) for keys, block in partitions]
  if not tiles:
    raise ValueError('A matrix needs at least one partition')
  if ncol is None:
    ncol = tiles[0].shape[1]
  for t in tiles:
    if t.shape[1] != ncol:
      raise ValueError('Partition has %d columns, expected %d' % (t.shape[1], ncol))

  tag = extent.PartitioningTag([t.keys for t in tiles])
  nrow = tag.nrow
  all_keys = np.concatenate(tag.partition_keys) if nrow else np.zeros(0, dtype=np.int64)
  if not np.array_equal(np.sort(all_keys), np.arange(nrow)):
    raise ValueError('Row keys must cover 0..%d exactly once' % (nrow - 1))

  # the blocks share the (read-only) keys of the tag
  tiles = [tile.Tile(k, t.data) for k, t in zip(tag.partition_keys, tiles)]
  matrix = DistMatrix(ctx, (nrow, ncol), tag, lambda: tiles, StorageLevel.MEMORY_ONLY)
  matrix._tiles = tiles
  return matrix


def from_numpy(ctx, data, num_partitions=None):
  '''
  Split an in-core matrix into contiguous row blocks.

  Args:
    ctx (BlobCtx):
    data: 2-d numpy array or scipy sparse matrix.
    num_partitions (int): Defaults to the number of workers of ``ctx``.
  '''
  if num_partitions is None:
    num_partitions = ctx.num_workers
  if sp.issparse(data):
    data = sp.csr_matrix(data)
  else:
    data = np.asarray(data, dtype=np.float64)
    if data.ndim == 1:
      data = data.reshape((-1, 1))
  util.Assert.eq(data.ndim, 2, 'from_numpy expects a matrix')

  splits = extent.compute_splits(data.shape[0], num_partitions)
  util.log_debug('Splitting %s into %d partitions', data.shape, len(splits))
  return from_partitions(ctx, [(np.arange(st, ed), data[st:ed]) for st, ed in splits],
                         ncol=data.shape[1])
