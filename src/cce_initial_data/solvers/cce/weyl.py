"""Newman-Penrose Weyl scalar Psi0 from Bondi J and its y derivatives."""

import numpy as np


def weyl_psi0(bondi_j, dy_j, dy_dy_j, bondi_k, bondi_r, one_minus_y, out=None) -> np.ndarray:
    """Psi0 (spin 2) on a surface of constant y.

    bondi_k is sqrt(1 + J Jbar); bondi_r is the Bondi radius of the
    worldtube; one_minus_y is evaluated pointwise.
    """
    j = np.asarray(bondi_j, dtype=np.complex128)
    dy_j = np.asarray(dy_j, dtype=np.complex128)
    dy_dy_j = np.asarray(dy_dy_j, dtype=np.complex128)
    k = np.asarray(bondi_k, dtype=np.complex128)
    r = np.asarray(bondi_r, dtype=np.complex128)
    one_minus_y = np.asarray(one_minus_y, dtype=np.complex128)

    j_bar = np.conj(j)
    dy_j_bar = np.conj(dy_j)
    dy_beta = 0.125 * one_minus_y * (
        dy_j * dy_j_bar - 0.25 * (j * dy_j_bar + j_bar * dy_j) ** 2 / k ** 2
    )
    one_plus_k = 1.0 + k

    psi_0 = one_minus_y ** 4 / (64.0 * k ** 3 * (one_plus_k * r) ** 2) * (
        j_bar * (1.0 - k) * one_plus_k ** 3 * dy_j ** 2
        + j * dy_j * dy_j_bar * (
            -j * j_bar * (1.0 + 2.0 * k) + one_plus_k * (one_plus_k + 2.0 * k ** 2 * (2.0 + k))
        )
        + 4.0 * k ** 2 * one_plus_k * dy_beta * (one_plus_k ** 2 * dy_j - j ** 2 * dy_j_bar)
        + one_plus_k * (
            -j ** 3 * one_plus_k * dy_j_bar ** 2
            + dy_dy_j * (2.0 * (j * k) ** 2 - 2.0 * (k * one_plus_k) ** 2)
        )
    )
    if out is None:
        return psi_0
    out[...] = psi_0
    return out
