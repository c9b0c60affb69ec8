"""
Acoustic simulation backends of mensurlab.
"""

from .air import AirProperties
from .radiation import BAFFLE, NONE, PIPE, RADIATION_MODES, RadiationModel
from .wall_loss import WallLossModel
from .sim_interface import AcousticSimulationInterface
from .tlm_python import SECTION_STEP_RATIO, TransmissionLineModel
