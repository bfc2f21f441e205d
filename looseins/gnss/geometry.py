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

"""Receiver-satellite geometry"""

from typing import Tuple

import numpy as np
from numpy.linalg import norm

from ..coordinate.transforms import ecef2enu_dcm


def geodist(sat_pos: np.ndarray, rec_pos: np.ndarray) -> Tuple[float, np.ndarray]:
    """Geometric distance and receiver-to-satellite unit vector"""
    diff = sat_pos - rec_pos
    r = norm(diff)
    if r > 0:
        e = diff / r
    else:
        e = np.zeros(3)
    return r, e


def satazel(llh: np.ndarray, e: np.ndarray) -> Tuple[float, float]:
    """Satellite azimuth/elevation from receiver position and line-of-sight vector"""
    enu = ecef2enu_dcm(llh) @ e

    az = np.arctan2(enu[0], enu[1])
    if az < 0:
        az += 2 * np.pi
    el = np.arcsin(np.clip(enu[2], -1.0, 1.0))

    return az, el


def pdop(H: np.ndarray) -> float:
    """Position dilution of precision from an unweighted design matrix"""
    try:
        Q = np.linalg.inv(H.T @ H)
    except np.linalg.LinAlgError:
        return float('inf')
    return float(np.sqrt(np.trace(Q[:3, :3])))
