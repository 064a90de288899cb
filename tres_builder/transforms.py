"""
Affine transform helpers (numpy).

Conventions follow three.js: 4x4 matrices act on column vectors, a local
matrix is ``T * R * S`` and Euler angles use the XYZ order
(``R = Rx * Ry * Rz``).
"""

import math

try:
    import numpy as np
except ImportError:
    raise ImportError(
        "numpy is required for transform math. "
        "Install it with: pip install numpy"
    )

# Below this |m13| the XYZ decomposition is not gimbal locked
_GIMBAL_EPSILON = 0.9999999


def euler_to_matrix(rotation):
    """3x3 rotation matrix of an XYZ Euler triple."""
    x, y, z = [float(v) for v in rotation]
    cx, sx = math.cos(x), math.sin(x)
    cy, sy = math.cos(y), math.sin(y)
    cz, sz = math.cos(z), math.sin(z)
    rx = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    ry = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rz = np.array([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]])
    return rx @ ry @ rz


def matrix_to_euler(rot):
    """XYZ Euler triple of a pure 3x3 rotation matrix."""
    m11, m12, m13 = rot[0]
    m22, m23 = rot[1][1], rot[1][2]
    m32, m33 = rot[2][1], rot[2][2]
    y = math.asin(min(max(float(m13), -1.0), 1.0))
    if abs(m13) < _GIMBAL_EPSILON:
        x = math.atan2(-m23, m33)
        z = math.atan2(-m12, m11)
    else:
        x = math.atan2(m32, m22)
        z = 0.0
    return [float(x), float(y), float(z)]


def quaternion_to_matrix(quat):
    """3x3 rotation matrix of an (x, y, z, w) quaternion."""
    x, y, z, w = [float(v) for v in quat]
    x2, y2, z2 = x + x, y + y, z + z
    xx, xy, xz = x * x2, x * y2, x * z2
    yy, yz, zz = y * y2, y * z2, z * z2
    wx, wy, wz = w * x2, w * y2, w * z2
    return np.array([
        [1.0 - (yy + zz), xy - wz, xz + wy],
        [xy + wz, 1.0 - (xx + zz), yz - wx],
        [xz - wy, yz + wx, 1.0 - (xx + yy)],
    ])


def quaternion_to_euler(quat):
    return matrix_to_euler(quaternion_to_matrix(quat))


def compose(position, rotation, scale):
    """4x4 matrix from position, XYZ Euler rotation and scale."""
    matrix = np.identity(4)
    matrix[:3, :3] = euler_to_matrix(rotation) * np.array(scale, dtype=np.float64)
    matrix[:3, 3] = position
    return matrix


def decompose(matrix):
    """
    Split a 4x4 affine matrix into (position, rotation, scale) lists.

    A negative determinant is folded into the X scale, as three.js does.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    basis = matrix[:3, :3]
    scale = np.linalg.norm(basis, axis=0)
    if np.linalg.det(basis) < 0:
        scale[0] = -scale[0]
    safe = np.where(scale == 0.0, 1.0, scale)
    rotation = matrix_to_euler(basis / safe)
    position = [float(v) for v in matrix[:3, 3]]
    return position, rotation, [float(v) for v in scale]


def matrix_from_gltf(values):
    """4x4 matrix from a glTF column-major 16-float list."""
    return np.array(values, dtype=np.float64).reshape(4, 4).T


def local_matrix(node):
    return compose(node.position, node.rotation, node.scale)


def world_matrix(node, stop=None):
    """
    Local matrix of ``node`` premultiplied by its ancestors' matrices.

    Accumulation ends below ``stop`` when given, so the result is
    expressed in the space of ``stop``.
    """
    matrix = local_matrix(node)
    for ancestor in node.ancestors():
        if ancestor is stop:
            break
        matrix = local_matrix(ancestor) @ matrix
    return matrix
