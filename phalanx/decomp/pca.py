import numpy as np

from ..array.distmatrix import DistMatrix
from .spca import spca


class PCA(object):
  """Principal component analysis (PCA)

  Based on stochastic PCA: the data is centered implicitly, so sparse
  partitioned input is never densified.
  """
  def __init__(self, n_components, oversampling=None, power_iters=None, seed=None,
               config=None):
    self.n_components = n_components
    self.oversampling = oversampling
    self.power_iters = power_iters
    self.seed = seed
    self.config = config

  def _fit(self, X):
    U, V, s, self.mean_ = spca(X, k=self.n_components, p=self.oversampling,
                               q=self.power_iters, seed=self.seed, config=self.config,
                               return_mean=True)
    self.components_ = V.T
    self.singular_values_ = s
    self.n_samples_ = X.nrow
    denom = max(X.nrow - 1, 1)
    self.explained_variance_ = s ** 2 / denom
    return U, s

  def fit(self, X):
    """Fit the model to the data X.

    Parameters
    ----------
    X:  DistMatrix of shape (n_samples, n_features).

    Returns
    -------
    self : object
        Returns the instance itself.
    """
    self._fit(X)
    return self

  def fit_transform(self, X):
    """Fit the model and return the scores of X.

    Returns
    -------
    X_new : DistMatrix of shape (n_samples, n_components), aligned with X.
    """
    U, s = self._fit(X)
    return U.map_block(lambda block: block * s, ncol=len(s))

  def transform(self, X):
    """Reduce dimensions of matrix X.

    Parameters
    ----------
    X : DistMatrix of shape (n_samples, n_features).

    Returns
    -------
    X_new : DistMatrix of shape (n_samples, n_components), aligned with X.
    """
    components = self.components_.T
    shift = self.mean_ @ components
    return X.map_block(lambda block: np.asarray(block @ components) - shift,
                       ncol=components.shape[1])

  def inverse_transform(self, X):
    """Transform data back to its original space.

    Parameters
    ----------
    X : DistMatrix or numpy array of shape (n_samples, n_components).

    Returns
    X_original: same kind as X, of shape (n_samples, n_features).
    """
    if isinstance(X, DistMatrix):
      return X.map_block(lambda block: block @ self.components_ + self.mean_,
                         ncol=self.components_.shape[1])
    return np.dot(X, self.components_) + self.mean_
