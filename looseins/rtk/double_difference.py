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

"""Between-receiver single differences and double differences"""

import logging
from typing import Dict, List, Mapping

import numpy as np

from ..core.constants import D2R, R2D, sat_id
from ..core.data_structures import (
    DoubleDifference, DoubleDifferenceSet, EpochObservation, SatKey, SingleDifference
)

logger = logging.getLogger(__name__)


def single_differences(rover: EpochObservation, base: EpochObservation) -> List[SingleDifference]:
    """
    Rover minus base differences of the satellites valid at both receivers

    The records keep the indices of the source observations instead of
    copies, in rover order.
    """
    sds = []
    for i, obs_r in enumerate(rover):
        if not obs_r.valid:
            continue
        j = base.find(obs_r.sys, obs_r.prn)
        if j is None or not base[j].valid:
            continue
        obs_b = base[j]
        sds.append(SingleDifference(
            sys=obs_r.sys,
            prn=obs_r.prn,
            psr=obs_r.P - obs_b.P,
            cp=obs_r.L - obs_b.L,
            rover_index=i,
            base_index=j,
        ))
    return sds


class DoubleDifferenceEngine:
    """
    Double difference formation with a remembered reference satellite

    Parameters
    ----------
    elevation_mask : float
        Satellites below this elevation (rad) are not differenced
    hysteresis : float
        The previous reference is kept until another satellite is higher by
        more than this margin (rad)
    """

    def __init__(self, elevation_mask: float = 15.0 * D2R, hysteresis: float = 10.0 * D2R):
        self.elevation_mask = elevation_mask
        self.hysteresis = hysteresis
        self.reference: Dict[int, int] = {}

    def reset(self):
        self.reference = {}

    def select_reference(self, sds: List[SingleDifference],
                         elevations: Mapping[SatKey, float]) -> Dict[int, int]:
        """
        Reference satellite per constellation

        The highest satellite is chosen (lowest PRN on ties) unless the
        previous reference is still a candidate and no satellite beats it by
        more than the hysteresis margin. A constellation without candidates
        is left out.
        """
        candidates: Dict[int, List[SingleDifference]] = {}
        for sd in sds:
            candidates.setdefault(sd.sys, []).append(sd)

        reference = {}
        for sys, group in candidates.items():
            best = max(group, key=lambda sd: (elevations[sd.key], -sd.prn))
            ref_prn = best.prn

            prev_prn = self.reference.get(sys)
            if prev_prn is not None and prev_prn != best.prn:
                prev_el = elevations.get((sys, prev_prn))
                in_group = any(sd.prn == prev_prn for sd in group)
                if in_group and elevations[best.key] - prev_el <= self.hysteresis:
                    ref_prn = prev_prn
                else:
                    logger.info(f"Reference satellite change: "
                                f"{sat_id(sys, prev_prn)} -> {sat_id(sys, best.prn)}")
            reference[sys] = ref_prn

        self.reference = dict(reference)
        return reference

    def form(self, rover: EpochObservation, base: EpochObservation,
             elevations: Mapping[SatKey, float]) -> DoubleDifferenceSet:
        """
        Form the double differences of one epoch

        Parameters:
        -----------
        rover, base : EpochObservation
            Screened observations of both receivers at the same epoch
        elevations : dict
            Satellite elevation (rad) seen from the rover

        Returns:
        --------
        DoubleDifferenceSet
            Records [L1 cyc, L2 cyc, P1 m, P2 m] per non-reference satellite
        """
        sds = [sd for sd in single_differences(rover, base)
               if elevations.get(sd.key, -np.pi) >= self.elevation_mask]
        reference = self.select_reference(sds, elevations)

        by_key = {sd.key: sd for sd in sds}
        records = []
        for sd in sds:
            ref_prn = reference.get(sd.sys)
            if ref_prn is None or sd.prn == ref_prn:
                continue
            ref = by_key[(sd.sys, ref_prn)]
            values = np.concatenate([sd.cp - ref.cp, sd.psr - ref.psr])
            records.append(DoubleDifference(
                sys=sd.sys,
                prn=sd.prn,
                ref_prn=ref_prn,
                values=values,
                rover_index=sd.rover_index,
                base_index=sd.base_index,
                ref_rover_index=ref.rover_index,
                ref_base_index=ref.base_index,
            ))

        dd = DoubleDifferenceSet(rover.time, tuple(records), reference)
        for sys, prn in reference.items():
            logger.debug(f"DD {sat_id(sys, prn)} ref, {dd.count(sys)} satellites, "
                         f"el {elevations[(sys, prn)] * R2D:.1f} deg")
        return dd

