import numpy as np
import scipy.sparse as sp

from .. import util


class Tile(object):
  '''
  A partition of a matrix: the ordered global row keys and the block of rows
  stored for them.

  ``data`` is either a dense 2-d `numpy.ndarray` or a scipy CSR matrix; row
  ``i`` of ``data`` holds global row ``keys[i]``.
  '''
  __slots__ = ('keys', 'data')

  def __init__(self, keys, data):
    util.Assert.eq(len(keys), data.shape[0], 'keys vs block rows')
    self.keys = keys
    self.data = data

  @property
  def shape(self):
    return self.data.shape

  @property
  def sparse(self):
    return sp.issparse(self.data)

  def __repr__(self):
    return 'tile(%s, %s%s)' % (self.shape, self.data.dtype,
                               ', sparse' if self.sparse else '')


def from_data(keys, data):
  '''Wrap ``data`` in a tile, normalizing the block type.

  Dense input becomes a 2-d float array; sparse input becomes CSR.
  '''
  if sp.issparse(data):
    data = sp.csr_matrix(data)
  else:
    data = np.asarray(data)
    if data.ndim == 1:
      data = data.reshape((-1, 1))
    util.Assert.eq(data.ndim, 2, 'tile data must be 2-dimensional')
  return Tile(keys, data)
