'''Stochastic PCA: stochastic SVD of the column-centered matrix.

The centered matrix C = A - 1 xi' (xi being the column means of A) is never
formed, which would densify sparse input.  Every product with C is computed
as the product with A followed by a rank-1 correction:

  C X  = A X  - 1 (xi' X)      (a row vector subtracted from each block row)
  C' Q = A' Q - xi (1' Q)      (1' Q: column sums of Q, from the same pass)
'''
import logging

import numpy as np

from .. import linalg, util
from .options import make_config
from .qr import thin_qr
from .ssvd import check_energy, reorthogonalize


def _centered_times(A, X, xi):
  '''C X as a matrix aligned with A.'''
  shift = xi @ X
  return A.map_block(lambda block: np.asarray(block @ X) - shift, ncol=X.shape[1])


def _centered_t_times(A, Q, xi):
  '''C' Q and Q' Q in core; A' Q and the column sums of Q share the pass.'''
  AtQ, q_sums, G = A.zip(Q).all_reduce(
      lambda a, q: (linalg.as_dense(a.T @ q), q.sum(axis=0), q.T @ q))
  return AtQ - np.outer(xi, q_sums), G


def spca(A, k=None, p=None, q=None, seed=None, config=None, random_source=None,
         return_mean=False):
  """
  Stochastic PCA.

  Parameters
  ----------
  A : DistMatrix
      Data of shape (M, N), one observation per row.  Sparse blocks stay
      sparse.
  k : int
      Number of principal components.
  p : int, optional
      Oversampling (default 15), reduced so that k + p <= min(M, N).
  q : int, optional
      Number of power iterations (default 0).
  seed : int, optional
      Seed of the random projection.
  config : DecompositionConfig, optional
  random_source : RandomSource, optional
  return_mean : bool, optional
      Also return the column means the data was centered with.

  Returns
  --------
  U : DistMatrix of shape (M, k), aligned with A.  U * diag(s) are the
      principal component scores.
  V : numpy array of shape (N, k); the loadings (principal axes).
  s : numpy array of shape (k,); singular values of the centered data.
  xi : numpy array of shape (N,); only if ``return_mean``.
  """
  cfg = make_config(config, k=k, p=p, q=q, seed=seed)
  m, n = A.shape
  l = cfg.projection_width(m, n)
  if random_source is None:
    random_source = cfg.random_source()

  util.log_info('spca: A=%s k=%d l=%d q=%d', A.shape, cfg.k, l, cfg.q)
  cached = A.persist()
  try:
    U, V, s, xi = _spca(cached, cfg, l, random_source)
  finally:
    if cached is not A:
      cached.unpersist()
  if return_mean:
    return U, V, s, xi
  return U, V, s


def _spca(A, cfg, l, random_source):
  xi = A.col_means()
  omega = random_source.omega(A.ncol, l)
  with util.timer_ctx('spca projection', level=logging.DEBUG):
    Y = _centered_times(A, omega, xi).persist()
    Q, _ = thin_qr(Y, cfg.check_rank_deficiency, cfg.rank_tolerance)
    Q = Q.persist()
    Bt, T = reorthogonalize(*_centered_t_times(A, Q, xi), cfg.rank_tolerance)
    Y.unpersist()

  energy = check_energy(linalg.frobenius_norm(Bt) ** 2, None, 0)
  for i in range(cfg.q):
    with util.timer_ctx('spca power iteration %d' % (i + 1), level=logging.DEBUG):
      Y = _centered_times(A, Bt, xi).persist()
      Q.unpersist()
      Q, _ = thin_qr(Y, cfg.check_rank_deficiency, cfg.rank_tolerance)
      Q = Q.persist()
      Bt, T = reorthogonalize(*_centered_t_times(A, Q, xi), cfg.rank_tolerance)
      Y.unpersist()
    energy = check_energy(linalg.frobenius_norm(Bt) ** 2, energy, i + 1)

  U_hat, s, Vt = linalg.svd(Bt.T)

  U = Q.times(T @ U_hat[:, :cfg.k])
  V = Vt[:cfg.k, :].T
  return U, V, s[:cfg.k], xi
