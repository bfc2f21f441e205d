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

"""Tropospheric delay models"""

import numpy as np

# Standard atmosphere at the reference height H0 = 0 m
T0 = 288.16     # K
P0 = 1013.25    # mbar
RH0 = 0.5       # relative humidity


def hopfield_model(elevation: float, height: float) -> float:
    """
    Hopfield tropospheric delay model

    Parameters
    ----------
    elevation : float
        Satellite elevation angle in radians
    height : float
        Receiver ellipsoidal height in meters

    Returns
    -------
    float
        Slant tropospheric delay in meters

    Notes
    -----
    The delay is zero for negative elevations and for receivers outside
    the -100 m to 10 km band where the standard atmosphere no longer
    applies.

    References
    ----------
    Hopfield, H. S. (1969), "Two-quartic tropospheric refractivity profile
    for correcting satellite data"
    """
    if elevation <= 0.0 or height < -100.0 or height > 1.0e4:
        return 0.0

    T = T0 - 0.0065 * height
    P = P0 * (1.0 - 0.0000226 * height) ** 5.225
    RH = RH0 * np.exp(-0.0006396 * height)
    e = RH * np.exp(-37.2465 + 0.213166 * T - 0.000256908 * T * T)

    hw = 11000.0
    hd = 40136.0 + 148.72 * (T0 - 273.16)
    Kw = 155.2e-7 * 4810.0 * e * (hw - height) / (T * T)
    Kd = 155.2e-7 * P * (hd - height) / T

    el_deg = np.degrees(elevation)
    return (Kd / np.sin(np.radians(np.sqrt(el_deg * el_deg + 6.25)))
            + Kw / np.sin(np.radians(np.sqrt(el_deg * el_deg + 2.25))))
