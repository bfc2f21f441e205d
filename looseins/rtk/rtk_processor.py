# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Main RTK processor integrating all RTK components"""

import logging
from typing import Dict, Mapping, Optional

import numpy as np

from ..core.constants import D2R, SOLQ_NONE, SOLQ_SINGLE
from ..core.data_structures import (
    Combination, EpochObservation, RtkSolution, SatKey, SppSolution
)
from ..gnss.combinations import compute_combinations
from ..gnss.spp import SinglePointEstimator
from ..satellite.ephemeris import EphemerisTable
from ..satellite.satellite_position import SatellitePositionEngine
from .ambiguity_resolution import AmbiguityResolver
from .cycle_slip import CycleSlipDetector, OutlierDetector
from .double_difference import DoubleDifferenceEngine

logger = logging.getLogger(__name__)


class RtkProcessor:
    """
    Per-epoch RTK pipeline of a rover and a base receiver.

    Each epoch runs SPP for the rover (and for the base when its position is
    not configured), cycle slip screening per receiver, double differencing,
    and float/fixed ambiguity resolution. A stage that cannot produce output
    degrades the solution quality instead of raising.

    Attributes:
        table: Ephemeris table shared with the caller, updated between epochs
        base_position: Configured base ECEF position (m), None to use base SPP
        rover_detector, base_detector: Per-receiver cycle slip screening
        dd_engine: Double difference formation with reference memory
        resolver: Float solution and integer ambiguity resolution

    Examples:
        >>> processor = RtkProcessor(table, base_position=base_xyz)
        >>> sol = processor.process_epoch(rover_epoch, base_epoch)
        >>> print(sol.quality, sol.ratio)
    """

    def __init__(self, table: EphemerisTable,
                 base_position: Optional[np.ndarray] = None,
                 elevation_mask: float = 15.0 * D2R,
                 ratio_threshold: float = 3.0,
                 hysteresis: float = 10.0 * D2R,
                 gf_threshold: float = 0.05,
                 mw_threshold: float = 3.0):
        self.table = table
        self.engine = SatellitePositionEngine(table)
        self.base_position = None if base_position is None else np.asarray(base_position, dtype=float)

        self.rover_spp = SinglePointEstimator(self.engine, elevation_mask)
        self.base_spp = SinglePointEstimator(self.engine, elevation_mask)
        self.rover_detector = CycleSlipDetector(OutlierDetector(gf_threshold, mw_threshold))
        self.base_detector = CycleSlipDetector(OutlierDetector(gf_threshold, mw_threshold))
        self.dd_engine = DoubleDifferenceEngine(elevation_mask, hysteresis)
        self.resolver = AmbiguityResolver(ratio_threshold)

        self.rover_prior: Optional[np.ndarray] = None
        self.base_prior: Optional[np.ndarray] = None

    def process_epoch(self, rover: EpochObservation, base: EpochObservation,
                      rover_history: Optional[Mapping[SatKey, Combination]] = None,
                      base_history: Optional[Mapping[SatKey, Combination]] = None
                      ) -> RtkSolution:
        """
        Process one epoch of RTK observations

        Parameters:
        -----------
        rover, base : EpochObservation
            Observations of both receivers at the same epoch
        rover_history, base_history : dict, optional
            Persisted GF/MW records of the previous epoch, replacing the
            history held by the detectors

        Returns:
        --------
        RtkSolution
            SOLQ_FIX, SOLQ_FLOAT, SOLQ_SINGLE (rover SPP only) or SOLQ_NONE
        """
        if rover_history is not None:
            self.rover_detector.load(rover_history)
        if base_history is not None:
            self.base_detector.load(base_history)

        rover_sol = self.rover_spp.estimate(rover, self.rover_prior, self.rover_detector.previous)
        if rover_sol is None:
            logger.info(f"No rover SPP at {rover.time}")
            return RtkSolution(time=rover.time, quality=SOLQ_NONE)
        self.rover_prior = rover_sol.xyz

        if self.base_position is not None:
            base_pos = self.base_position
            base_states = self.engine.compute(base, base_pos)
            base_comb = compute_combinations(base, self.base_detector.previous)
        else:
            base_sol = self.base_spp.estimate(base, self.base_prior, self.base_detector.previous)
            if base_sol is None:
                logger.info(f"No base SPP at {base.time}")
                return self._single(rover_sol, None)
            self.base_prior = base_sol.xyz
            base_pos, base_states, base_comb = base_sol.xyz, base_sol.satellites, base_sol.combinations

        rover_clean, _, rover_slips = self.rover_detector.screen(rover, rover_sol.combinations)
        base_clean, _, base_slips = self.base_detector.screen(base, base_comb)

        elevations: Dict[SatKey, float] = {
            key: state.elevation for key, state in rover_sol.satellites.items()
            if state.valid and key in base_states and base_states[key].valid
        }
        dd = self.dd_engine.form(rover_clean, base_clean, elevations)
        logger.debug(f"{rover.time}: {len(dd)} DD, slips rover={len(rover_slips)} "
                     f"base={len(base_slips)}")

        sol = self.resolver.resolve(dd, rover_sol.satellites, base_states, base_pos, rover_sol.xyz)
        if sol is None:
            return self._single(rover_sol, base_pos)
        self.rover_prior = sol.position
        return sol

    def _single(self, rover_sol: SppSolution, base_pos: Optional[np.ndarray]) -> RtkSolution:
        baseline = np.zeros(3) if base_pos is None else rover_sol.xyz - base_pos
        return RtkSolution(
            time=rover_sol.time,
            quality=SOLQ_SINGLE,
            position=rover_sol.xyz.copy(),
            baseline=baseline,
            qr=rover_sol.qr,
            ns=rover_sol.ns,
        )

    def reset(self):
        """Forget receiver priors, slip histories and reference satellites"""
        self.rover_prior = None
        self.base_prior = None
        self.rover_detector.reset()
        self.base_detector.reset()
        self.dd_engine.reset()
