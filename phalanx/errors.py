'''Exceptions raised by phalanx decompositions and the partitioned matrix layer.

Every fatal error aborts the whole decomposition call; no partial results
are returned.  ``NumericDivergenceWarning`` is a warning, not an error: the
randomized algorithms are approximate, so a power iteration that fails to
improve the captured subspace is reported and the call continues.
'''


class PhalanxError(Exception):
  pass


class ConfigurationError(PhalanxError, ValueError):
  '''Invalid decomposition parameters (k <= 0, p < 0, q < 0, ...).'''


class RankDeficiencyError(PhalanxError):
  '''The Gram matrix of a thin QR input is not (numerically) positive definite.'''


class PartitionMismatchError(PhalanxError):
  '''Two matrices with different partitioning tags were zipped together.'''


class AggregationFailure(PhalanxError):
  '''A reduction barrier failed.

  The exception raised by the worker is available as ``__cause__``.
  '''
  def __init__(self, msg, partition=None):
    super(AggregationFailure, self).__init__(msg)
    self.partition = partition


class NumericDivergenceWarning(RuntimeWarning):
  pass
