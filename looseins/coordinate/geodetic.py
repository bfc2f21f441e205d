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

"""Earth model quantities used by the strapdown mechanization (NED frame)"""

from typing import Tuple

import numpy as np

from ..core.constants import (
    E2_WGS84, GRAVITY_A1, GRAVITY_A2, GRAVITY_B1, GRAVITY_B2, GRAVITY_B3,
    GRAVITY_G0, RE_WGS84, WIE
)


def radii_of_curvature(lat: float) -> Tuple[float, float]:
    """
    Meridian and prime-vertical radii of curvature

    Parameters:
    -----------
    lat : float
        Geodetic latitude (rad)

    Returns:
    --------
    rm, rn : float
        Meridian radius RM and transverse radius RN (m)
    """
    s2 = np.sin(lat) ** 2
    w = 1.0 - E2_WGS84 * s2
    rn = RE_WGS84 / np.sqrt(w)
    rm = RE_WGS84 * (1.0 - E2_WGS84) / (w * np.sqrt(w))
    return rm, rn


def normal_gravity(lat: float, h: float) -> float:
    """
    Normal gravity magnitude on the WGS84 ellipsoid

    g = g0 (1 + a1 sin^2 B + a2 sin^4 B) + (b1 + b2 sin^2 B) h + b3 h^2
    """
    s2 = np.sin(lat) ** 2
    return (GRAVITY_G0 * (1.0 + GRAVITY_A1 * s2 + GRAVITY_A2 * s2 * s2)
            + (GRAVITY_B1 + GRAVITY_B2 * s2) * h + GRAVITY_B3 * h * h)


def gravity_ned(blh: np.ndarray) -> np.ndarray:
    """Gravity vector in the NED frame (positive down)"""
    return np.array([0.0, 0.0, normal_gravity(blh[0], blh[2])])


def earth_rate_ned(lat: float) -> np.ndarray:
    """Earth rotation rate expressed in the NED frame, w_ie^n"""
    return np.array([WIE * np.cos(lat), 0.0, -WIE * np.sin(lat)])


def transport_rate_ned(blh: np.ndarray, vel_ned: np.ndarray) -> np.ndarray:
    """Rotation rate of the NED frame over the Earth, w_en^n"""
    lat, h = blh[0], blh[2]
    rm, rn = radii_of_curvature(lat)
    vn, ve = vel_ned[0], vel_ned[1]
    return np.array([ve / (rn + h),
                     -vn / (rm + h),
                     -ve * np.tan(lat) / (rn + h)])


def ned_to_blh_matrix(blh: np.ndarray) -> np.ndarray:
    """Matrix D^-1 mapping a small NED displacement (m) to d(lat, lon, h)"""
    lat, h = blh[0], blh[2]
    rm, rn = radii_of_curvature(lat)
    return np.diag([1.0 / (rm + h), 1.0 / ((rn + h) * np.cos(lat)), -1.0])


def blh_to_ned_matrix(blh: np.ndarray) -> np.ndarray:
    """Matrix D mapping d(lat, lon, h) to a NED displacement (m)"""
    lat, h = blh[0], blh[2]
    rm, rn = radii_of_curvature(lat)
    return np.diag([rm + h, (rn + h) * np.cos(lat), -1.0])
