"""
Scene graph indexing and duplicate geometry detection.

A single ``GraphIndex`` is built per compilation.  It records the nodes in
pre-order, counts material usage by name and groups meshes by their
(geometry identity, material name) signature.  Signatures that may be
shared through instancing get a ``DuplicateRecord`` with a unique
PascalCase display name.
"""

import logging
from collections import OrderedDict

from .errors import MalformedGraphError, DuplicateNameError
from .naming import accessor, component_name
from .options import InstancingMode

log = logging.getLogger(__name__)


class DuplicateRecord(object):
    """A (geometry, material) signature shared by one or more meshes."""

    def __init__(self, name, node, material, tag, count=1):
        """
        Args:
            name: Unique display name, used as ``instances.<name>``.
            node: Lookup path of the first mesh that can be instanced,
                e.g. "nodes.Cube"; None until one is seen.
            material: Lookup path of the shared material, or None.
            tag: Element the shared declaration renders, e.g. "TresMesh".
            count: Number of meshes with this signature, including
                material-less and GPU instanced ones.
        """
        self.name = name
        self.node = node
        self.material = material
        self.tag = tag
        self.count = count

    @property
    def declarable(self):
        """False while no mesh with this signature can be instanced."""
        return self.material is not None

    def __repr__(self):
        return "DuplicateRecord({!r}, count={})".format(self.name, self.count)


def signature(node):
    """Duplicate detection key of a mesh node."""
    material_name = node.material.name if node.material is not None else ''
    return (node.geometry.uuid, material_name or '')


def _instanceable(node):
    return node.is_mesh and not node.is_instanced_mesh and node.material is not None


def material_path(node):
    """Lookup path of a node's material in the generated script."""
    if node.material.name:
        return 'materials' + accessor(node.material.name)
    return 'nodes' + accessor(node.name) + '.material'


class GraphIndex(object):
    """
    Flat node list plus the duplicate tables of one scene graph.

    Attributes:
        objects: All nodes in pre-order, captured before any rewriting.
        materials: material name -> number of meshes using it.
        geometries: signature -> DuplicateRecord.
    """

    def __init__(self, root, instancing=InstancingMode.NONE):
        self.root = root
        self.instancing = instancing
        self.objects = list(root.traverse())
        self.materials = OrderedDict()
        self.geometries = OrderedDict()

        self._validate()
        self._count_materials()
        self._collect_geometries()

        if instancing != InstancingMode.ALL:
            for key in [k for k, rec in self.geometries.items() if rec.count == 1]:
                del self.geometries[key]

        log.debug("Indexed %d nodes, %d materials, %d shared geometries",
                  len(self.objects), len(self.materials), len(self.geometries))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _validate(self):
        for node in self.objects:
            if node.is_mesh and node.geometry is None:
                raise MalformedGraphError("Mesh has no geometry", node)
            if node.geometry is not None and not node.geometry.uuid:
                raise MalformedGraphError("Geometry has no identity", node)
            if node.material is not None and not node.material.uuid:
                raise MalformedGraphError("Material has no identity", node)
            if node.is_instanced_mesh and node.material is None:
                raise MalformedGraphError("Instanced mesh has no material", node)

    def _count_materials(self):
        for node in self.objects:
            if node.is_mesh and node.material is not None:
                name = node.material.name
                self.materials[name] = self.materials.get(name, 0) + 1

    def _collect_geometries(self):
        for node in self.objects:
            if not node.is_mesh:
                continue
            key = signature(node)
            record = self.geometries.get(key)
            if record is None:
                record = self.geometries[key] = DuplicateRecord(
                    name=self._unique_name(component_name(node.name), node),
                    node=None, material=None, tag=None, count=0)
            record.count += 1
            # Declarations come from the first mesh that can be instanced
            if record.material is None and _instanceable(node):
                record.node = 'nodes' + accessor(node.name)
                record.material = material_path(node)
                record.tag = 'Tres' + node.type

    def _unique_name(self, attempt, node):
        """
        First of ``attempt``, ``attempt1``, ``attempt2``, ... not already
        used by a record in the table.
        """
        taken = set(rec.name for rec in self.geometries.values())
        # At most len(taken) candidates can collide
        for index in range(len(taken) + 1):
            candidate = attempt + str(index) if index else attempt
            if candidate not in taken:
                return candidate
        raise DuplicateNameError(
            "No unique instance name left for {!r}".format(attempt), node)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def instance_record(self, node):
        """Return the DuplicateRecord ``node`` is emitted through, or None."""
        if self.instancing == InstancingMode.NONE:
            return None
        if not _instanceable(node):
            return None
        record = self.geometries.get(signature(node))
        if record is None or not record.declarable:
            return None
        threshold = 0 if self.instancing == InstancingMode.ALL else 1
        return record if record.count > threshold else None

    def instances(self):
        """Records declared as shared instances, in allocation order."""
        if self.instancing == InstancingMode.NONE:
            return []
        return [rec for rec in self.geometries.values() if rec.declarable]
