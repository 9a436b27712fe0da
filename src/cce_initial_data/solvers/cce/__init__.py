from .errors import (
    BracketingError,
    CceInitializationError,
    DivergenceError,
    MissingArchiveError,
    NonConvergenceWarning,
)
from .gauge import (
    AngularCoordinates,
    conformal_factor,
    gauge_adjust_j,
    gauge_jacobians,
    gauge_transform_j,
    inverse_gauge_jacobians,
)
from .state import BoundaryData, CceState, ConvergenceRecord, InitialHypersurface
from .conformal_factor import ConformalFactor, adjust_angular_coordinates_for_omega
from .weyl import weyl_psi0
from .psi0 import GeneratePsi0, radial_evolve_psi0_condition, second_derivative_of_j_from_worldtubes
from .worldtube import (
    BoundaryDataSource,
    BoundarySnapshot,
    MultiArchiveSnapshot,
    ResolutionAdapter,
    TabulatedWorldtubeArchive,
    read_in_worldtube_data,
)
from .inverse_cubic import InverseCubic
from .hypersurface import (
    INITIAL_DATA_STRATEGIES,
    InitialDataStrategy,
    initialize_first_hypersurface,
    make_strategy,
    resample_initial_hypersurface,
)
