"""Waterman butterfly: a polyhedral projection on a truncated octahedron.

The sphere is split into eight hexagons (octahedron faces with their
corners cut off) and twenty-four corner triangles.  Each face is drawn
with its own gnomonic projection, and the faces are unfolded as a tree:
every child face is rotated, scaled and translated so that the edge it
shares with its parent lines up with the parent's copy of that edge.

Affine transforms are stored as 6-tuples ``(a, b, c, d, e, f)`` standing
for the matrix ``[[a, b, c], [d, e, f], [0, 0, 1]]``.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from globe_field.raw import Azimuthal, Point, Polygon, RawProjection
from globe_field.rotation import Rotation, lonlat_to_xyz, xyz_to_lonlat

Affine = Tuple[float, float, float, float, float, float]
Vector3 = Tuple[float, float, float]

# Vertices of the octahedron in degrees [longitude, latitude].
OCTAHEDRON = [
    (0.0, 90.0),
    (-90.0, 0.0), (0.0, 0.0), (90.0, 0.0), (180.0, 0.0),
    (0.0, -90.0),
]

OCTAHEDRON_FACES = [
    [OCTAHEDRON[i] for i in face]
    for face in (
        (0, 2, 1), (0, 3, 2), (5, 1, 2), (5, 2, 3),
        (0, 1, 4), (0, 4, 3), (5, 4, 1), (5, 3, 4),
    )
]

# Parent of each hexagon in the unfolding tree (-1 marks the root).
HEXAGON_PARENTS = (-1, 0, 0, 1, 0, 1, 4, 5)

# Weights placing the hexagon corners one third of the way along each
# octahedron edge (3/sqrt(10) and 1/sqrt(10)).
_NEAR = 0.9486832980505138
_FAR = 0.31622776601683794

_IDENTITY: Affine = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0)


def _cartesian(point: Point) -> Vector3:
    return lonlat_to_xyz(math.radians(point[0]), math.radians(point[1]))


def _spherical(v: Vector3) -> Point:
    lam, phi = xyz_to_lonlat(*v)
    return (math.degrees(lam), math.degrees(phi))


def _cross(a: Vector3, b: Vector3) -> Vector3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def _dot(a: Vector3, b: Vector3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _point_equal(a: Point, b: Point) -> bool:
    return abs(a[0] - b[0]) < 1e-9 and abs(a[1] - b[1]) < 1e-9


def multiply(a: Affine, b: Affine) -> Affine:
    """Compose two affine transforms (``a`` applied after ``b``)."""
    return (
        a[0] * b[0] + a[1] * b[3],
        a[0] * b[1] + a[1] * b[4],
        a[0] * b[2] + a[1] * b[5] + a[2],
        a[3] * b[0] + a[4] * b[3],
        a[3] * b[1] + a[4] * b[4],
        a[3] * b[2] + a[4] * b[5] + a[5],
    )


def inverse(m: Affine) -> Affine:
    """Invert an affine transform."""
    k = m[0] * m[4] - m[1] * m[3]
    return (
        m[4] / k,
        -m[1] / k,
        (m[1] * m[5] - m[2] * m[4]) / k,
        -m[3] / k,
        m[0] / k,
        (m[2] * m[3] - m[0] * m[5]) / k,
    )


def apply(m: Affine, p: Point) -> Point:
    return (m[0] * p[0] + m[1] * p[1] + m[2], m[3] * p[0] + m[4] * p[1] + m[5])


def edge_transform(a: Sequence[Point], b: Sequence[Point]) -> Affine:
    """Similarity transform carrying segment *b* onto segment *a*."""
    ux, uy = a[1][0] - a[0][0], a[1][1] - a[0][1]
    vx, vy = b[1][0] - b[0][0], b[1][1] - b[0][1]
    phi = math.atan2(ux * vy - uy * vx, ux * vx + uy * vy)
    s = math.hypot(ux, uy) / math.hypot(vx, vy)
    cos_phi = math.cos(phi)
    sin_phi = math.sin(phi)
    return multiply(
        (1.0, 0.0, a[0][0], 0.0, 1.0, a[0][1]),
        multiply(
            (s, 0.0, 0.0, 0.0, s, 0.0),
            multiply(
                (cos_phi, sin_phi, 0.0, -sin_phi, cos_phi, 0.0),
                (1.0, 0.0, -b[0][0], 0.0, 1.0, -b[0][1]),
            ),
        ),
    )


class _Gnomonic(Azimuthal):
    def __init__(self) -> None:
        super().__init__(lambda cos_c: 1.0 / cos_c if cos_c else math.inf, math.atan)


_GNOMONIC = _Gnomonic()


class Face:
    """One face of the polyhedron with its local gnomonic projection.

    Attributes:
        vertices: Face corners in degrees.
        center: Tangent point of the face's gnomonic projection (degrees).
        transform: Placement of the face in the unfolded layout.
        children: Faces attached to this one in the unfolding tree.
    """

    def __init__(self, vertices: List[Point], center: Point) -> None:
        self.vertices = vertices
        self.center = center
        self._rotation = Rotation((-center[0], -center[1]))
        self.transform: Affine = _IDENTITY
        self._inverse: Affine = _IDENTITY
        self.children: List["Face"] = []

    def project(self, point: Point) -> Point:
        """Gnomonic projection of a point (degrees) in face-local coordinates."""
        lam, phi = self._rotation(math.radians(point[0]), math.radians(point[1]))
        return _GNOMONIC.forward(lam, phi)

    def unproject(self, p: Point) -> Optional[Point]:
        """Inverse of :meth:`project`, returning degrees."""
        geo = _GNOMONIC.invert(*p)
        if geo is None:
            return None
        lam, phi = self._rotation.invert(*geo)
        return (math.degrees(lam), math.degrees(phi))

    def place(self, transform: Affine) -> None:
        self.transform = transform
        self._inverse = inverse(transform)

    def to_local(self, p: Point) -> Point:
        return apply(self._inverse, p)


def _shared_edge(a: List[Point], b: List[Point]) -> Optional[List[Point]]:
    found: Optional[Point] = None
    for x in a:
        for y in reversed(b):
            if _point_equal(x, y):
                if found is not None:
                    return [found, x]
                found = x
    return None


class WatermanButterfly(RawProjection):
    """Truncated-octahedron butterfly unfolded around hexagon 0.

    Args:
        angle: Rotation (radians) of the root face in the plane.
    """

    name = "waterman"

    def __init__(self, angle: float = -math.pi / 6.0) -> None:
        hexagons: List[List[Point]] = []
        for face in OCTAHEDRON_FACES:
            xyz = [_cartesian(p) for p in face]
            a = xyz[-1]
            hexagon: List[Point] = []
            for b in xyz:
                hexagon.append(_spherical((
                    a[0] * _NEAR + b[0] * _FAR,
                    a[1] * _NEAR + b[1] * _FAR,
                    a[2] * _NEAR + b[2] * _FAR,
                )))
                hexagon.append(_spherical((
                    b[0] * _NEAR + a[0] * _FAR,
                    b[1] * _NEAR + a[1] * _FAR,
                    b[2] * _NEAR + a[2] * _FAR,
                )))
                a = b
            hexagons.append(hexagon)

        faces: List[Face] = []
        for hexagon in hexagons:
            sx, sy, sz = (sum(c) for c in zip(*(_cartesian(p) for p in hexagon)))
            norm = math.sqrt(sx * sx + sy * sy + sz * sz)
            faces.append(Face(hexagon, _spherical((sx / norm, sy / norm, sz / norm))))

        parents = list(HEXAGON_PARENTS)
        self._corner_normals: List[List[Vector3]] = []
        for j, hexagon in enumerate(hexagons):
            face = OCTAHEDRON_FACES[j]
            n = len(face)
            normals: List[Vector3] = []
            for i in range(n):
                near_next = hexagon[(i * 2 + 2) % (2 * n)]
                near_prev = hexagon[(i * 2 + 1) % (2 * n)]
                faces.append(Face([face[i], near_next, near_prev], face[i]))
                parents.append(j)
                normals.append(_cross(_cartesian(near_next), _cartesian(near_prev)))
            self._corner_normals.append(normals)

        for i, parent in enumerate(parents):
            if parent >= 0:
                faces[parent].children.append(faces[i])

        self.faces = faces
        self.root = faces[0]
        cos_r = math.cos(angle)
        sin_r = math.sin(angle)
        self._place(self.root, None, (cos_r, -sin_r, 0.0, sin_r, cos_r, 0.0))

    def _place(self, node: Face, parent: Optional[Face], root: Affine) -> None:
        if parent is None:
            node.place(root)
        else:
            shared = _shared_edge(node.vertices, parent.vertices)
            if shared is None:
                raise ValueError("polyhedral face is not adjacent to its parent")
            m = edge_transform(
                [parent.project(p) for p in shared],
                [node.project(p) for p in shared],
            )
            node.place(multiply(parent.transform, m))
        for child in node.children:
            self._place(child, node, root)

    def face(self, lam: float, phi: float) -> Face:
        """Face containing the point (radians)."""
        p = lonlat_to_xyz(lam, phi)
        if lam < -math.pi / 2:
            h = 6 if phi < 0 else 4
        elif lam < 0:
            h = 2 if phi < 0 else 0
        elif lam < math.pi / 2:
            h = 3 if phi < 0 else 1
        else:
            h = 7 if phi < 0 else 5
        n = self._corner_normals[h]
        if _dot(n[0], p) < 0:
            return self.faces[8 + 3 * h]
        if _dot(n[1], p) < 0:
            return self.faces[8 + 3 * h + 1]
        if _dot(n[2], p) < 0:
            return self.faces[8 + 3 * h + 2]
        return self.faces[h]

    def forward(self, lam: float, phi: float) -> Point:
        node = self.face(lam, phi)
        return apply(node.transform, node.project((math.degrees(lam), math.degrees(phi))))

    def invert(self, x: float, y: float) -> Optional[Point]:
        found = self._invert(self.root, (x, y))
        if found is None:
            return None
        return (math.radians(found[0]), math.radians(found[1]))

    def _invert(self, node: Face, p: Point) -> Optional[Point]:
        geo = node.unproject(node.to_local(p))
        if geo is not None and self.face(math.radians(geo[0]), math.radians(geo[1])) is node:
            return geo
        for child in node.children:
            found = self._invert(child, p)
            if found is not None:
                return found
        return None

    def outline(self, step: float) -> List[Polygon]:
        """One polygon per face; gnomonic faces have straight edges."""
        return [
            [apply(face.transform, face.project(v)) for v in face.vertices]
            for face in self.faces
        ]
