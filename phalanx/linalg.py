'''Local dense linear algebra on small, in-core matrices.

Only matrices whose size is bounded by the number of columns (Gram matrices,
R factors, projected B matrices) go through these helpers.  They are thin
wrappers over scipy.linalg / numpy.linalg, with the numeric policies the
decompositions rely on kept in one place.
'''
import numpy as np
import scipy.sparse as sp
from scipy import linalg

from . import util
from .errors import RankDeficiencyError

# Initial ridge, relative to the mean Gram diagonal, of the fallback Cholesky.
RIDGE_START = 1e-12
RIDGE_GROWTH = 100.0
RIDGE_ATTEMPTS = 10


def as_dense(x):
  if sp.issparse(x):
    return x.toarray()
  return np.asarray(x)


def frobenius_norm(x):
  return float(np.linalg.norm(as_dense(x), ord='fro'))


def cholesky(G, rank_tolerance=None):
  '''
  Lower Cholesky factor of the symmetric matrix ``G``.

  Raises `RankDeficiencyError` if ``G`` is not positive definite or, when
  ``rank_tolerance`` is given, if the smallest diagonal entry of ``L`` is
  below ``rank_tolerance`` times the largest one.
  '''
  try:
    L = linalg.cholesky(G, lower=True, check_finite=True)
  except (linalg.LinAlgError, ValueError) as ex:
    raise RankDeficiencyError('Gram matrix is not positive definite: %s' % ex) from ex

  if rank_tolerance is not None and L.shape[0] > 0:
    d = np.abs(np.diag(L))
    if d.min() < rank_tolerance * d.max():
      raise RankDeficiencyError(
          'Gram matrix is rank deficient: min diag(L)=%g, max diag(L)=%g' % (d.min(), d.max()))
  return L


def _well_conditioned(L, rank_tolerance):
  if rank_tolerance is None or L.shape[0] == 0:
    return True
  d = np.abs(np.diag(L))
  return d.min() >= rank_tolerance * d.max()


def regularized_cholesky(G, rank_tolerance=None):
  '''
  Cholesky factor of ``G``, adding a growing ridge to the diagonal until the
  factorization succeeds.

  When ``rank_tolerance`` is given, a factor whose diagonal fails the same
  relative check as `cholesky` is also retried with a ridge; directions of
  ``G`` far below the ridge are then damped instead of blown up.

  Returns:
    (L, ridge): the factor and the ridge that was added (0.0 if none).

  Raises `RankDeficiencyError` if ``G`` has non-finite entries, which no
  ridge can repair.
  '''
  try:
    L = linalg.cholesky(G, lower=True, check_finite=True)
    if _well_conditioned(L, rank_tolerance):
      return L, 0.0
  except linalg.LinAlgError:
    pass
  except ValueError as ex:
    raise RankDeficiencyError('Gram matrix cannot be factored: %s' % ex) from ex

  n = G.shape[0]
  scale = np.trace(G) / max(n, 1)
  if not scale > 0:
    scale = 1.0
  ridge = RIDGE_START * scale
  eye = np.eye(n)
  for _ in range(RIDGE_ATTEMPTS):
    try:
      L = linalg.cholesky(G + ridge * eye, lower=True)
      if _well_conditioned(L, rank_tolerance):
        util.log_info('Gram matrix is singular or ill-conditioned; factored with ridge %g', ridge)
        return L, ridge
    except linalg.LinAlgError:
      pass
    ridge *= RIDGE_GROWTH
  raise RankDeficiencyError('Gram matrix could not be factored even with ridge %g' % ridge)


def solve_right_upper(block, R):
  '''Return ``block`` times the inverse of the upper-triangular ``R``.

  Solves ``X R = block`` as ``R' X' = block'`` without forming ``inv(R)``.
  '''
  block = as_dense(block)
  if block.shape[0] == 0:
    return np.zeros((0, R.shape[1]))
  return linalg.solve_triangular(R, block.T, trans='T', lower=False).T


def gram_orthonormalizer(G, rank_tolerance):
  '''
  Return ``T`` such that ``Q T`` has orthonormal columns, given ``G = Q'Q``.

  ``T = W diag(w)^(-1/2)`` from the eigendecomposition ``G = W diag(w) W'``.
  Directions of ``Q`` whose singular value is below ``rank_tolerance`` times
  the largest one carry only round-off; their columns of ``T`` are zero, so
  ``Q T`` has zero columns in place of amplified noise.
  '''
  w, W = linalg.eigh(G)
  scale = np.zeros_like(w)
  if w.size and w[-1] > 0:
    keep = w > rank_tolerance ** 2 * w[-1]
    scale[keep] = 1.0 / np.sqrt(w[keep])
    if not keep.all():
      util.log_debug('Dropped %d of %d basis directions below %g', (~keep).sum(), len(w),
                     rank_tolerance)
  return W * scale


def svd(B):
  '''Thin SVD ``B = U diag(s) Vt`` with singular values in descending order.'''
  U, s, Vt = linalg.svd(as_dense(B), full_matrices=False, lapack_driver='gesdd')
  return U, s, Vt
