'''Parameters shared by the stochastic decompositions.'''
from traits.api import Bool, Enum, Float, Int, TraitError, Union

from .. import util
from ..config import FLAGS
from ..errors import ConfigurationError
from ..node import Node
from ..random import DISTRIBUTIONS, SeededRandomSource


class DecompositionConfig(Node):
  '''
  Parameters of a stochastic SVD / PCA call.

  Attributes:
    k (int): Target rank, > 0.
    p (int): Oversampling, >= 0.  Clamped so that k + p <= min(m, n).
    q (int): Number of power iterations, >= 0.
    seed (int or None): Seed of the random projection.
    check_rank_deficiency (bool): Fail instead of regularizing when the
      Gram matrix of a thin QR is singular.
    rank_tolerance (float): Relative diag(L) threshold of the rank check.
    omega_distribution (str): 'uniform' or 'gaussian'.
  '''
  k = Int(1)
  p = Int(15)
  q = Int(0)
  seed = Union(None, Int)
  check_rank_deficiency = Bool(False)
  rank_tolerance = Float(1e-7)
  omega_distribution = Enum(*DISTRIBUTIONS)

  def validate(self):
    if self.k <= 0:
      raise ConfigurationError('target rank k must be positive, got %d' % self.k)
    if self.p < 0:
      raise ConfigurationError('oversampling p must be non-negative, got %d' % self.p)
    if self.q < 0:
      raise ConfigurationError('power iterations q must be non-negative, got %d' % self.q)
    if not self.rank_tolerance > 0:
      raise ConfigurationError('rank_tolerance must be positive, got %g' % self.rank_tolerance)
    return self

  def projection_width(self, m, n):
    '''Number of projection columns l = k + p for an ``m x n`` input.'''
    if self.k > min(m, n):
      raise ConfigurationError('k=%d cannot exceed min(m, n)=%d' % (self.k, min(m, n)))
    p = min(self.p, min(m, n) - self.k)
    if p != self.p:
      util.log_debug('Oversampling clamped from %d to %d for a %dx%d input', self.p, p, m, n)
    return self.k + p

  def random_source(self):
    return SeededRandomSource(self.seed, self.omega_distribution)


def make_config(config=None, **kw):
  '''
  Build and validate a `DecompositionConfig`.

  Keyword arguments that are None are left at their defaults; when flags
  have been parsed, the defaults come from ``FLAGS``.  An explicit
  ``config`` is copied and then updated with the keywords.
  '''
  kw = dict((k, v) for k, v in kw.items() if v is not None)
  try:
    if config is not None:
      values = dict((name, getattr(config, name)) for name in config.members)
      values.update(kw)
    else:
      values = {}
      if FLAGS._parsed:
        values.update(p=FLAGS.default_oversampling,
                      rank_tolerance=FLAGS.rank_tolerance,
                      omega_distribution=FLAGS.omega_distribution)
      values.update(kw)
    return DecompositionConfig(**values).validate()
  except TraitError as ex:
    raise ConfigurationError(str(ex)) from ex
