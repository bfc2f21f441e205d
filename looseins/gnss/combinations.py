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

"""Dual-frequency observation combinations

Geometry-free (GF), Melbourne-Wubbena (MW) and ionosphere-free (IF)
combinations, with a per-satellite epoch counter used for MW smoothing
and cycle-slip screening.
"""

from typing import Dict, Mapping, Optional

from ..core.constants import CLIGHT, sys_frequencies
from ..core.data_structures import Combination, EpochObservation, SatelliteObservation, SatKey


def form_combination(obs: SatelliteObservation,
                     previous: Optional[Combination] = None) -> Optional[Combination]:
    """
    Combinations of one dual-frequency observation

    Parameters
    ----------
    obs : SatelliteObservation
        Observation with code and phase on both frequencies
    previous : Combination, optional
        Record of the same satellite from the previous epoch

    Returns
    -------
    Combination or None
        None when the observation is not dual-frequency
    """
    if not obs.valid:
        return None
    f1, f2 = sys_frequencies(obs.sys)
    if f1 <= 0.0 or f2 <= 0.0:
        return None

    lam1, lam2 = CLIGHT / f1, CLIGHT / f2
    L1, L2 = obs.L[0] * lam1, obs.L[1] * lam2   # meters
    P1, P2 = obs.P

    gf = L1 - L2
    lam_wl = CLIGHT / (f1 - f2)
    mw = ((f1 * L1 - f2 * L2) / (f1 - f2) - (f1 * P1 + f2 * P2) / (f1 + f2)) / lam_wl

    g1, g2 = f1 * f1, f2 * f2
    if_phase = (g1 * L1 - g2 * L2) / (g1 - g2)
    if_code = (g1 * P1 - g2 * P2) / (g1 - g2)

    if previous is None:
        count = 1
        mw_smoothed = mw
    else:
        count = previous.count + 1
        mw_smoothed = previous.mw_smoothed + (mw - previous.mw_smoothed) / count

    return Combination(obs.sys, obs.prn, gf, mw, mw_smoothed, if_phase, if_code, count)


def restart_combination(comb: Combination) -> Combination:
    """Restart the smoothing of a record at the current epoch"""
    return Combination(comb.sys, comb.prn, comb.gf, comb.mw, comb.mw, comb.if_phase,
                       comb.if_code, 1)


def compute_combinations(epoch: EpochObservation,
                         previous: Optional[Mapping[SatKey, Combination]] = None
                         ) -> Dict[SatKey, Combination]:
    """
    GF/MW/IF records of an epoch, smoothed against the previous epoch

    A satellite absent from ``previous`` starts a new record with count 1.
    """
    previous = previous or {}
    records = {}
    for obs in epoch:
        comb = form_combination(obs, previous.get(obs.key))
        if comb is not None:
            records[obs.key] = comb
    return records


def if_code(obs: SatelliteObservation) -> float:
    """Ionosphere-free code combination, first-frequency code when f2 is missing"""
    f1, f2 = sys_frequencies(obs.sys)
    P1, P2 = obs.P
    if P2 <= 0.0 or f2 <= 0.0:
        return P1
    g1, g2 = f1 * f1, f2 * f2
    return (g1 * P1 - g2 * P2) / (g1 - g2)
