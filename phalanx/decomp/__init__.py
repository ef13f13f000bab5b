from .options import DecompositionConfig, make_config
from .pca import PCA
from .qr import thin_qr
from .spca import spca
from .ssvd import check_energy, ssvd
