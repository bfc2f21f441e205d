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

"""
Float solution and integer ambiguity resolution of double differences

The integer search is the LAMBDA decorrelation followed by the MLAMBDA
tree search.

References:
    [1] P.J.G.Teunissen, The least-square ambiguity decorrelation adjustment:
        a method for fast GPS ambiguity estimation, J.Geodesy, Vol.70, 65-82, 1995
    [2] X.-W.Chang, X.Yang, T.Zhou, MLAMBDA: A modified LAMBDA method for
        integer least-squares estimation, J.Geodesy, Vol.79, 552-565, 2005
    [3] P.J.G.Teunissen, Success probability of integer GPS ambiguity rounding
        and bootstrapping, J.Geodesy, Vol.72, 606-612, 1998
"""

import logging
from typing import Mapping, Optional, Tuple

import numpy as np
from numpy.linalg import norm
from scipy.stats import norm as gaussian

from ..core.constants import SOLQ_FIX, SOLQ_FLOAT, sys_wavelengths
from ..core.data_structures import DoubleDifferenceSet, RtkSolution, SatelliteState, SatKey
from ..core.linalg import invert

logger = logging.getLogger(__name__)

RATIO_MAX = 999.9     # ratio reported when the best candidate fits exactly
MAX_SEARCH_LOOP = 10000
MAXITR = 10
CONV_TOL = 1e-4       # baseline correction norm at convergence (m)


def LD(Q: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    LD factorization Q = L^T diag(d) L

    Parameters
    ----------
    Q : np.ndarray
        Symmetric positive definite matrix (n x n)

    Returns
    -------
    L : np.ndarray
        Unit lower triangular matrix
    d : np.ndarray
        Diagonal values
    """
    n = len(Q)
    L = np.zeros((n, n))
    d = np.zeros(n)
    A = Q.copy()

    for i in range(n - 1, -1, -1):
        d[i] = A[i, i]
        if d[i] <= 0.0:
            logger.warning(f"LD factorization: non-positive pivot d[{i}]={d[i]:.3e}")
            d[i] = 1e-6
        L[i, :i + 1] = A[i, :i + 1] / np.sqrt(d[i])
        for j in range(i):
            A[j, :j + 1] -= L[i, :j + 1] * L[i, j]
        L[i, :i + 1] /= L[i, i]

    return L, d


def reduction(L: np.ndarray, d: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Decorrelation by integer Gauss transformations and permutations

    Returns the reduced factors and the unimodular transformation Z with
    z = Z^T a.
    """
    n = len(d)
    Z = np.eye(n)
    j = k = n - 2

    while j >= 0:
        if j <= k:
            for i in range(j + 1, n):
                mu = round(L[i, j])
                if mu != 0:
                    L[i:, j] -= mu * L[i:, i]
                    Z[:, j] -= mu * Z[:, i]

        delta = d[j] + L[j + 1, j] ** 2 * d[j + 1]
        if delta + 1e-6 < d[j + 1]:
            eta = d[j] / delta
            lam = d[j + 1] * L[j + 1, j] / delta
            d[j] = eta * d[j + 1]
            d[j + 1] = delta

            L[j:j + 2, :j] = np.array([[-L[j + 1, j], 1.0], [eta, lam]]) @ L[j:j + 2, :j]
            L[j + 1, j] = lam
            L[j + 2:, [j, j + 1]] = L[j + 2:, [j + 1, j]]
            Z[:, [j, j + 1]] = Z[:, [j + 1, j]]
            j, k = n - 2, j
        else:
            j -= 1

    return L, d, Z


def search(L: np.ndarray, d: np.ndarray, zs: np.ndarray, m: int = 2) -> Tuple[np.ndarray, np.ndarray]:
    """
    MLAMBDA depth-first search for the m best integer vectors

    Returns
    -------
    zn : np.ndarray
        Candidates as columns (n x m), best first
    s : np.ndarray
        Squared residual norm of each candidate
    """
    n = len(d)
    found = 0
    worst = 0
    chi2 = 1e18

    S = np.zeros((n, n))
    dist = np.zeros(n)
    zb = np.zeros(n)
    z = np.zeros(n)
    step = np.zeros(n)
    zn = np.zeros((n, m))
    s = np.zeros(m)

    k = n - 1
    zb[k] = zs[k]
    z[k] = round(zb[k])
    y = zb[k] - z[k]
    step[k] = 1.0 if y >= 0 else -1.0

    for _ in range(MAX_SEARCH_LOOP):
        newdist = dist[k] + y ** 2 / d[k]
        if newdist < chi2:
            if k != 0:
                k -= 1
                dist[k] = newdist
                S[k, :k + 1] = S[k + 1, :k + 1] + (z[k + 1] - zb[k + 1]) * L[k + 1, :k + 1]
                zb[k] = zs[k] + S[k, k]
                z[k] = round(zb[k])
                y = zb[k] - z[k]
                step[k] = 1.0 if y >= 0 else -1.0
            else:
                if found < m:
                    if found == 0 or newdist > s[worst]:
                        worst = found
                    zn[:, found] = z
                    s[found] = newdist
                    found += 1
                else:
                    if newdist < s[worst]:
                        zn[:, worst] = z
                        s[worst] = newdist
                        worst = int(np.argmax(s))
                    chi2 = s[worst]
                z[0] += step[0]
                y = zb[0] - z[0]
                step[0] = -step[0] - np.sign(step[0])
        else:
            if k == n - 1:
                break
            k += 1
            z[k] += step[k]
            y = zb[k] - z[k]
            step[k] = -step[k] - np.sign(step[k])
    else:
        logger.warning("MLAMBDA search loop limit reached")

    order = np.argsort(s[:found])
    return zn[:, order], s[order]


def mlambda(a: np.ndarray, Q: np.ndarray, m: int = 2) -> Tuple[np.ndarray, np.ndarray]:
    """
    Integer least-squares estimation of float ambiguities

    Parameters
    ----------
    a : np.ndarray
        Float ambiguities (n,)
    Q : np.ndarray
        Covariance of the float ambiguities (n x n)
    m : int
        Number of candidates

    Returns
    -------
    afix : np.ndarray
        Integer candidates as columns (n x m), best first
    s : np.ndarray
        Squared residual norm of each candidate
    """
    L, d = LD(Q)
    L, d, Z = reduction(L, d)
    E, s = search(L, d, Z.T @ a, m)
    afix = np.round(np.linalg.solve(Z.T, E))
    return afix, s


def ratio_test(s: np.ndarray) -> float:
    """Second-best over best squared residual, capped at RATIO_MAX"""
    if len(s) < 2:
        return 0.0
    if s[0] <= 0.0:
        return RATIO_MAX
    return float(min(s[1] / s[0], RATIO_MAX))


def bootstrap_success_rate(Q: np.ndarray) -> float:
    """
    Success rate of integer bootstrapping on the decorrelated ambiguities

    P = prod(2 Phi(1 / (2 sqrt(d_i))) - 1)
    """
    L, d = LD(Q)
    _, d, _ = reduction(L, d)
    return float(np.prod(2.0 * gaussian.cdf(0.5 / np.sqrt(d)) - 1.0))


class AmbiguityResolver:
    """
    Float and fixed baseline from one epoch of double differences

    The float solution estimates the baseline together with one L1 and one
    L2 ambiguity (cycles) per double difference from code and phase. The
    fix is accepted only as a whole, when the ratio test passes.

    Parameters
    ----------
    ratio_threshold : float
        Second-best / best ratio that a fix must exceed
    phase_sigma, code_sigma : float
        Undifferenced zenith noise of phase and code (m)
    """

    def __init__(self, ratio_threshold: float = 3.0,
                 phase_sigma: float = 0.003, code_sigma: float = 0.3):
        self.ratio_threshold = ratio_threshold
        self.phase_sigma = phase_sigma
        self.code_sigma = code_sigma

    def _variance(self, sigma: float, el: float) -> float:
        return sigma ** 2 * (1.0 + 1.0 / max(np.sin(el), 0.1) ** 2)

    def _dd_covariance(self, dd: DoubleDifferenceSet,
                       elevations: Mapping[SatKey, float]) -> np.ndarray:
        """Covariance D Sigma D^T of [L1, L2, P1, P2] blocks, per constellation"""
        n = len(dd)
        R = np.zeros((4 * n, 4 * n))
        for t, sigma in enumerate((self.phase_sigma, self.phase_sigma,
                                   self.code_sigma, self.code_sigma)):
            for i, ri in enumerate(dd.records):
                ref_var = 2.0 * self._variance(sigma, elevations[(ri.sys, ri.ref_prn)])
                sat_var = 2.0 * self._variance(sigma, elevations[ri.key])
                for j, rj in enumerate(dd.records):
                    if rj.sys != ri.sys:
                        continue
                    R[t * n + i, t * n + j] = ref_var + (sat_var if i == j else 0.0)
        return R

    def float_solution(self, dd: DoubleDifferenceSet,
                       rover_states: Mapping[SatKey, SatelliteState],
                       base_states: Mapping[SatKey, SatelliteState],
                       base_pos: np.ndarray, baseline0: np.ndarray
                       ) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """
        Iterated weighted least squares of baseline and ambiguities

        The double-difference model carries no troposphere term, so the
        differential slant delay between the two sites is absorbed by the
        baseline; over 10 km this is at the centimetre level.

        Returns
        -------
        x : np.ndarray
            [baseline (3), N1 (n), N2 (n)]
        Q : np.ndarray
            Covariance of x, None returned instead when singular
        """
        n = len(dd)
        elevations = {k: s.elevation for k, s in rover_states.items()}
        W, singular = invert(self._dd_covariance(dd, elevations))
        if singular:
            return None

        lams = np.array([sys_wavelengths(r.sys) for r in dd.records])  # (n, 2)
        x = np.zeros(3 + 2 * n)
        x[:3] = baseline0
        Q = None
        for _ in range(MAXITR):
            rover_pos = base_pos + x[:3]
            H = np.zeros((4 * n, 3 + 2 * n))
            v = np.zeros(4 * n)
            for i, rec in enumerate(dd.records):
                ref = (rec.sys, rec.ref_prn)
                rho, e = _sd_range(rover_states[rec.key], base_states[rec.key], rover_pos, base_pos)
                rho_r, e_r = _sd_range(rover_states[ref], base_states[ref], rover_pos, base_pos)
                rho_dd = rho - rho_r
                g = -(e - e_r)
                for f in range(2):
                    H[f * n + i, :3] = g
                    H[f * n + i, 3 + f * n + i] = lams[i, f]
                    v[f * n + i] = (lams[i, f] * rec.values[f]
                                    - (rho_dd + lams[i, f] * x[3 + f * n + i]))
                    H[(2 + f) * n + i, :3] = g
                    v[(2 + f) * n + i] = rec.values[2 + f] - rho_dd

            N = H.T @ W @ H
            Q, singular = invert(N)
            if singular:
                logger.info(f"Float solution singular at {dd.time}")
                return None
            dx = Q @ H.T @ W @ v
            x += dx
            if norm(dx[:3]) < CONV_TOL:
                break
        return x, Q

    def search(self, a_float: np.ndarray,
               Q_NN: np.ndarray) -> Tuple[Optional[np.ndarray], float]:
        """
        Integer search with ratio validation

        Returns the best integer vector and the ratio. The vector is None
        unless the ratio is strictly above the threshold.
        """
        afix, s = mlambda(a_float, Q_NN, m=2)
        ratio = ratio_test(s)
        if ratio <= self.ratio_threshold:
            return None, ratio
        return afix[:, 0], ratio

    def resolve(self, dd: DoubleDifferenceSet,
                rover_states: Mapping[SatKey, SatelliteState],
                base_states: Mapping[SatKey, SatelliteState],
                base_pos: np.ndarray, rover_approx: np.ndarray) -> Optional[RtkSolution]:
        """
        Float solution, integer search and ratio validation

        Parameters:
        -----------
        dd : DoubleDifferenceSet
            Double differences of the epoch
        rover_states, base_states : dict
            Satellite states computed for each receiver
        base_pos : np.ndarray
            Base ECEF position (m)
        rover_approx : np.ndarray
            Approximate rover ECEF position (m), usually the rover SPP

        Returns:
        --------
        RtkSolution or None
            SOLQ_FIX or SOLQ_FLOAT solution; None when the double
            differences cannot support a float solution
        """
        n = len(dd)
        if n < 3:
            logger.info(f"Ambiguity resolution skipped: {n} double differences")
            return None

        result = self.float_solution(dd, rover_states, base_states, base_pos,
                                     rover_approx - base_pos)
        if result is None:
            return None
        x, Q = result
        b_float, a_float = x[:3], x[3:]
        Q_bb, Q_bN, Q_NN = Q[:3, :3], Q[:3, 3:], Q[3:, 3:]
        ns = n + len(dd.reference)

        a_fix, ratio = self.search(a_float, Q_NN)
        success = bootstrap_success_rate(Q_NN)

        if a_fix is None:
            logger.info(f"Ratio test failed at {dd.time}: {ratio:.2f} <= {self.ratio_threshold}")
            return RtkSolution(
                time=dd.time, quality=SOLQ_FLOAT, position=base_pos + b_float,
                baseline=b_float.copy(), ratio=ratio, float_ambiguities=a_float.copy(),
                qr=Q_bb.copy(), ns=ns, success_rate=success)

        Q_NN_inv, _ = invert(Q_NN)
        b_fix = b_float - Q_bN @ Q_NN_inv @ (a_float - a_fix)
        Q_fix = Q_bb - Q_bN @ Q_NN_inv @ Q_bN.T
        logger.debug(f"Fixed {len(a_fix)} ambiguities at {dd.time}, ratio {ratio:.1f}, "
                     f"success rate {success:.4f}")
        return RtkSolution(
            time=dd.time, quality=SOLQ_FIX, position=base_pos + b_fix,
            baseline=b_fix, ratio=ratio, fixed_ambiguities=a_fix.astype(int),
            float_ambiguities=a_float.copy(), qr=Q_fix, ns=ns, success_rate=success)


def _sd_range(rover_state: SatelliteState, base_state: SatelliteState,
              rover_pos: np.ndarray, base_pos: np.ndarray) -> Tuple[float, np.ndarray]:
    """Between-receiver range difference and rover line-of-sight vector"""
    d_r = rover_state.position - rover_pos
    r_r = norm(d_r)
    r_b = norm(base_state.position - base_pos)
    return r_r - r_b, d_r / r_r

