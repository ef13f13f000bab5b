'''Random projection matrices for the stochastic decompositions.

Projections are drawn from a `RandomSource` that is passed into each
decomposition call.  A source is fully determined by its seed, so the same
seed always reproduces the same projection matrix; there is no shared or
global generator.
'''
import numpy as np

from . import util

UNIFORM = 'uniform'
GAUSSIAN = 'gaussian'
DISTRIBUTIONS = (UNIFORM, GAUSSIAN)


class RandomSource(object):
  '''Interface of a pseudo-random source for projection matrices.'''

  def omega(self, n, l):
    '''Return an ``n x l`` random projection matrix.'''
    raise NotImplementedError


class SeededRandomSource(RandomSource):
  '''
  Projection matrices from numpy's PCG64 generator.

  Every call to `omega` restarts from the seed: asking twice for the same
  shape yields the same matrix.

  Args:
    seed (int): Seed of the generator; a fresh one is drawn when None.
    distribution (str): 'uniform' (symmetric uniform on [-1, 1)) or
      'gaussian' (standard normal).
  '''
  def __init__(self, seed=None, distribution=UNIFORM):
    if distribution not in DISTRIBUTIONS:
      raise ValueError('Unknown projection distribution: %s' % distribution)
    if seed is None:
      seed = int(np.random.SeedSequence().generate_state(1)[0])
      util.log_info('No seed given; using random projection seed %d', seed)
    self.seed = seed
    self.distribution = distribution

  def __repr__(self):
    return 'SeededRandomSource(seed=%s, distribution=%s)' % (self.seed, self.distribution)

  def omega(self, n, l):
    rng = np.random.default_rng(self.seed)
    if self.distribution == GAUSSIAN:
      return rng.standard_normal(size=(n, l))
    return rng.uniform(-1.0, 1.0, size=(n, l))
