import numpy as np

import test_common
from phalanx import ConfigurationError, SeededRandomSource
from phalanx.decomp import DecompositionConfig, make_config
from phalanx.util import Assert


class TestOptions(test_common.ClusterTest):
  def test_defaults(self):
    cfg = make_config(k=3)
    Assert.eq(cfg.k, 3)
    Assert.eq(cfg.p, 15)
    Assert.eq(cfg.q, 0)
    Assert.true(cfg.seed is None)
    Assert.eq(cfg.check_rank_deficiency, False)
    Assert.eq(cfg.omega_distribution, 'uniform')

  def test_override(self):
    base = DecompositionConfig(k=4, p=2, q=1, seed=9)
    cfg = make_config(base, q=3, seed=None)
    Assert.eq((cfg.k, cfg.p, cfg.q, cfg.seed), (4, 2, 3, 9))
    # the base config is left alone
    Assert.eq(base.q, 1)

  def test_invalid(self):
    Assert.raises_exception(ConfigurationError, make_config, k=0)
    Assert.raises_exception(ConfigurationError, make_config, k=2, p=-1)
    Assert.raises_exception(ConfigurationError, make_config, k=2, q=-2)
    Assert.raises_exception(ConfigurationError, make_config, k='many')
    Assert.raises_exception(ConfigurationError, make_config, k=2, omega_distribution='cauchy')
    Assert.raises_exception(ConfigurationError, make_config, k=2, rank_tolerance=0.0)
    # strict traits reject unknown parameters
    Assert.raises_exception(ConfigurationError, make_config, k=2, oversample=3)
    # configuration errors are value errors
    Assert.raises_exception(ValueError, make_config, k=-1)

  def test_projection_width(self):
    cfg = make_config(k=4, p=10)
    Assert.eq(cfg.projection_width(100, 50), 14)
    # p shrinks so that k + p fits the smaller dimension
    Assert.eq(cfg.projection_width(100, 6), 6)
    Assert.eq(cfg.projection_width(4, 100), 4)
    Assert.raises_exception(ConfigurationError, cfg.projection_width, 3, 100)

  def test_debug_str(self):
    cfg = DecompositionConfig(k=2)
    Assert.true('k = 2' in cfg.debug_str())
    Assert.true(repr(cfg).startswith('DecompositionConfig('))


def test_random_source():
  a = SeededRandomSource(7)
  omega = a.omega(20, 5)
  Assert.eq(omega.shape, (20, 5))
  Assert.true(np.all(omega >= -1.0) and np.all(omega < 1.0))
  Assert.all_eq(omega, SeededRandomSource(7).omega(20, 5))
  Assert.true(not np.array_equal(omega, SeededRandomSource(8).omega(20, 5)))

  g = SeededRandomSource(7, 'gaussian').omega(2000, 1)
  Assert.lt(abs(g.mean()), 0.1)
  Assert.lt(abs(g.std() - 1.0), 0.1)

  # an unseeded source picks a seed and keeps it
  fresh = SeededRandomSource()
  Assert.isinstance(fresh.seed, int)
  Assert.all_eq(fresh.omega(3, 3), fresh.omega(3, 3))

  Assert.raises_exception(ValueError, SeededRandomSource, 1, 'cauchy')
