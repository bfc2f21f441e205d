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

"""Matrix helpers shared by the estimators"""

import logging
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)


def invert(A: np.ndarray, cond_limit: float = 1e12) -> Tuple[np.ndarray, bool]:
    """
    Invert a square matrix without raising on singularity

    Parameters
    ----------
    A : np.ndarray
        Square matrix (n x n)
    cond_limit : float
        Matrices whose condition number exceeds this are treated as singular

    Returns
    -------
    inv : np.ndarray
        Inverse of A, or the identity matrix when A is singular
    singular : bool
        True when the identity sentinel was returned
    """
    n = A.shape[0]
    if A.shape != (n, n) or n == 0:
        raise ValueError(f"invert expects a non-empty square matrix, got shape {A.shape}")

    if not np.all(np.isfinite(A)) or np.linalg.cond(A) > cond_limit:
        logger.warning(f"Singular matrix ({n}x{n}), returning identity")
        return np.eye(n), True
    try:
        return np.linalg.inv(A), False
    except np.linalg.LinAlgError:
        logger.warning(f"Singular matrix ({n}x{n}), returning identity")
        return np.eye(n), True


def weighted_least_squares(H: np.ndarray, v: np.ndarray, W: np.ndarray):
    """
    Solve the normal equations of a weighted least-squares step

    Returns
    -------
    dx : np.ndarray or None
        State correction, None when the normal matrix is singular
    Q : np.ndarray
        Cofactor matrix (H^T W H)^-1 (identity when singular)
    """
    N = H.T @ W @ H
    Q, singular = invert(N)
    if singular:
        return None, Q
    return Q @ H.T @ W @ v, Q
