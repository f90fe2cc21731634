# SPDX-License-Identifier: LGPL-3.0-or-later
import unittest
import xml.etree.ElementTree as ET

from vmdesk.libvirt.domain import DiskDef, DiskDevice, DiskType, DomainDef, GraphicsDef, GraphicsType
from vmdesk.libvirt.domain_xml import domain_to_xml


class TestDomainXml(unittest.TestCase):
    """Test domain XML rendering."""

    def _domain(self, **kw):
        base = dict(
            name="web & db",
            uuid="564d8b2a-1c9f-4105-8e3a-4e5f60718293",
            memory_kib=2097152,
            vcpus=2,
            arch="x86_64",
            disks=[
                DiskDef(src="/vms/web/web.vmdk", dst="sda", bus="scsi"),
                DiskDef(device=DiskDevice.CDROM, type=DiskType.BLOCK, src="/dev/sr0", dst="hdc", bus="ide"),
            ],
            graphics=[GraphicsDef(type=GraphicsType.VNC, port=5901, listen="127.0.0.1")],
        )
        base.update(kw)
        return DomainDef(**base)

    def test_valid_xml(self):
        root = ET.fromstring(domain_to_xml(self._domain(id=4321)))

        self.assertEqual(root.tag, "domain")
        self.assertEqual(root.get("type"), "vmware")
        self.assertEqual(root.get("id"), "4321")
        self.assertEqual(root.findtext("name"), "web & db")
        self.assertEqual(root.findtext("memory"), "2097152")
        self.assertEqual(root.find("os/type").get("arch"), "x86_64")

    def test_no_id_when_inactive(self):
        root = ET.fromstring(domain_to_xml(self._domain()))

        self.assertIsNone(root.get("id"))

    def test_disks(self):
        root = ET.fromstring(domain_to_xml(self._domain()))
        disks = root.findall("devices/disk")

        self.assertEqual(disks[0].find("source").get("file"), "/vms/web/web.vmdk")
        self.assertEqual(disks[1].get("device"), "cdrom")
        self.assertEqual(disks[1].find("source").get("dev"), "/dev/sr0")
        self.assertEqual(disks[1].find("target").get("bus"), "ide")

    def test_graphics(self):
        g = ET.fromstring(domain_to_xml(self._domain())).find("devices/graphics")

        self.assertEqual(g.get("type"), "vnc")
        self.assertEqual(g.get("port"), "5901")
        self.assertEqual(g.get("listen"), "127.0.0.1")

    def test_quote_in_source_escaped(self):
        d = self._domain(disks=[DiskDef(src="/vms/it's/x.vmdk")])

        root = ET.fromstring(domain_to_xml(d))

        self.assertEqual(root.find("devices/disk/source").get("file"), "/vms/it's/x.vmdk")


if __name__ == "__main__":
    unittest.main()
