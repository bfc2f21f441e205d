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

"""Cycle slip detection for RTK processing"""

import logging
from collections import deque
from typing import Dict, Mapping, Optional, Set, Tuple

from ..core.constants import sat_id
from ..core.data_structures import Combination, EpochObservation, SatKey
from ..gnss.combinations import restart_combination

logger = logging.getLogger(__name__)


class OutlierDetector:
    """Epoch-to-epoch GF/MW consistency test of one satellite"""

    def __init__(self,
                 gf_threshold: float = 0.05,   # meters
                 mw_threshold: float = 3.0):   # cycles
        """
        Initialize outlier detector

        Parameters:
        -----------
        gf_threshold : float
            Geometry-free jump threshold (meters)
        mw_threshold : float
            Melbourne-Wubbena departure from the smoothed mean (cycles)
        """
        self.gf_threshold = gf_threshold
        self.mw_threshold = mw_threshold

    def is_outlier(self, current: Combination, previous: Optional[Combination]) -> bool:
        """
        Check one satellite against its record of the previous epoch

        A satellite without a previous record cannot be tested and is
        accepted.
        """
        if previous is None:
            return False

        gf_jump = abs(current.gf - previous.gf)
        mw_jump = abs(current.mw - previous.mw_smoothed)
        if gf_jump > self.gf_threshold or mw_jump > self.mw_threshold:
            logger.debug(f"{sat_id(current.sys, current.prn)}: "
                         f"GF jump {gf_jump:.3f} m, MW jump {mw_jump:.2f} cyc")
            return True
        return False


class CycleSlipDetector:
    """
    Cycle slip screening for one receiver

    The detector owns the GF/MW history of its receiver as a two-slot ring
    buffer (current and previous epoch). Rover and base each need their own
    instance so that a slipped observation is removed before differencing.

    Parameters
    ----------
    outlier : OutlierDetector, optional
        Per-satellite test, default thresholds when omitted
    """

    HISTORY_LENGTH = 2

    def __init__(self, outlier: Optional[OutlierDetector] = None):
        self.outlier = outlier or OutlierDetector()
        self.history = deque(maxlen=self.HISTORY_LENGTH)

    @property
    def previous(self) -> Dict[SatKey, Combination]:
        """Combination records of the last screened epoch"""
        return self.history[-1] if self.history else {}

    def load(self, records: Mapping[SatKey, Combination]):
        """Install an externally persisted history as the last epoch"""
        self.history.clear()
        self.history.append(dict(records))

    def reset(self):
        self.history.clear()

    def screen(self, epoch: EpochObservation,
               combinations: Mapping[SatKey, Combination]
               ) -> Tuple[EpochObservation, Dict[SatKey, Combination], Set[SatKey]]:
        """
        Screen the combinations of an epoch against the previous epoch

        Parameters:
        -----------
        epoch : EpochObservation
            Observations of this receiver
        combinations : dict
            GF/MW/IF records of this epoch, smoothed against ``previous``

        Returns:
        --------
        epoch : EpochObservation
            Copy with slipped satellites marked invalid
        records : dict
            Records stored for the next epoch, slipped ones restarted
        slipped : set
            Satellites with a detected slip
        """
        previous = self.previous
        records = {}
        slipped = set()
        for key, comb in combinations.items():
            if self.outlier.is_outlier(comb, previous.get(key)):
                slipped.add(key)
                records[key] = restart_combination(comb)
            else:
                records[key] = comb

        if slipped:
            logger.info(f"Cycle slip at {epoch.time}: "
                        f"{' '.join(sat_id(*k) for k in sorted(slipped))}")

        self.history.append(records)
        return epoch.with_invalid(slipped), records, slipped
