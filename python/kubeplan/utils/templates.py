"""
kubeplan/utils/templates.py

Manifest templates. The compiler depends on the TemplateLoader protocol,
which returns the parsed objects of a named template; EmbeddedTemplateLoader
serves the templates bundled in this module.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol

import yaml

from kubeplan.errors import ManifestTemplateError

ETCD_MANAGER_TEMPLATE = "etcd-manager"

DEFAULT_ETCD_MANAGER_MANIFEST = """
apiVersion: v1
kind: Pod
metadata:
  name: etcd-manager
  namespace: kube-system
spec:
  containers:
  - image: kopeio/etcd-manager:3.0.20210228
    name: etcd-manager
    resources:
      requests:
        cpu: 100m
        memory: 100Mi
    # Needed for volume mounting
    securityContext:
      privileged: true
    volumeMounts:
    - mountPath: /rootfs
      name: rootfs
    - mountPath: /run
      name: run
    - mountPath: /etc/kubernetes/pki/etcd-manager
      name: pki
  hostNetwork: true
  hostPID: true # helps with mounting volumes from inside a container
  volumes:
  - hostPath:
      path: /
      type: Directory
    name: rootfs
  - hostPath:
      path: /run
      type: DirectoryOrCreate
    name: run
  - hostPath:
      path: /etc/kubernetes/pki/etcd-manager
      type: DirectoryOrCreate
    name: pki
"""


class TemplateLoader(Protocol):
    def load_template(self, name: str) -> List[Dict[str, Any]]:
        """Return every object in the named template, in document order."""
        ...


def parse_manifest(manifest: str) -> List[Dict[str, Any]]:
    """
    Parse a multi-document YAML manifest, dropping empty documents.

    Raises:
        ManifestTemplateError: If the YAML is malformed or a document is not a mapping.
    """
    try:
        docs = [doc for doc in yaml.safe_load_all(manifest) if doc is not None]
    except yaml.YAMLError as e:
        raise ManifestTemplateError(f"error parsing manifest: {e}") from e
    if not all(isinstance(doc, dict) for doc in docs):
        raise ManifestTemplateError("manifest documents must be mappings")
    return docs


class EmbeddedTemplateLoader:
    """Serves templates from an in-memory name -> YAML mapping."""

    def __init__(self, templates: Optional[Mapping[str, str]] = None) -> None:
        self.templates = {ETCD_MANAGER_TEMPLATE: DEFAULT_ETCD_MANAGER_MANIFEST}
        self.templates.update(templates or {})

    def load_template(self, name: str) -> List[Dict[str, Any]]:
        if name not in self.templates:
            raise ManifestTemplateError(f"no embedded manifest template named {name!r}")
        return parse_manifest(self.templates[name])
