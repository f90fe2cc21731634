# SPDX-License-Identifier: LGPL-3.0-or-later
import tempfile
import unittest
from pathlib import Path

from vmdesk.core.exceptions import MissingDisk, ParseError
from vmdesk.libvirt.domain import DiskDef, DiskDevice, DiskType, DomainDef, GraphicsDef, GraphicsType
from vmdesk.vmware.vmx import VmxTranslator, parse_entries

SAMPLE_VMX = b"""\
.encoding = "UTF-8"
# comment line
displayName = "Win 10 |22lab|22"
uuid.bios = "56 4d 8b 2a 1c 9f 41 05-8e 3a 4e 5f 60 71 82 93"
guestOS = "windows9-64"
memsize = "4096"
numvcpus = "4"
ide1:0.present = "TRUE"
ide1:0.deviceType = "cdrom-image"
ide1:0.fileName = "/isos/win10.iso"
scsi0.present = "TRUE"
scsi0:1.present = "TRUE"
scsi0:1.fileName = "/vms/win10/win10-1.vmdk"
scsi0:0.present = "TRUE"
scsi0:0.fileName = "/vms/win10/win10.vmdk"
sata0:0.present = "FALSE"
sata0:0.fileName = "/vms/win10/ignored.vmdk"
floppy0.present = "TRUE"
floppy0.fileName = "/vms/win10/boot.flp"
RemoteDisplay.vnc.enabled = "TRUE"
RemoteDisplay.vnc.port = "5905"
"""


class TestVmxParse(unittest.TestCase):
    """Test vmx -> DomainDef."""

    def setUp(self):
        self.tr = VmxTranslator()
        self.d = self.tr.parse(SAMPLE_VMX)

    def test_basic_fields(self):
        self.assertEqual(self.d.name, 'Win 10 "lab"')
        self.assertEqual(self.d.uuid, "564d8b2a-1c9f-4105-8e3a-4e5f60718293")
        self.assertEqual(self.d.memory_kib, 4096 * 1024)
        self.assertEqual(self.d.vcpus, 4)
        self.assertEqual(self.d.arch, "x86_64")
        self.assertEqual(self.d.id, -1)

    def test_disk_order(self):
        # scsi before ide, units in order, floppies last, absent devices dropped
        srcs = [x.src for x in self.d.disks]
        self.assertEqual(
            srcs,
            ["/vms/win10/win10.vmdk", "/vms/win10/win10-1.vmdk", "/isos/win10.iso", "/vms/win10/boot.flp"],
        )

    def test_disk_kinds(self):
        first, _second, cdrom, floppy = self.d.disks
        self.assertEqual((first.device, first.type, first.dst, first.bus), (DiskDevice.DISK, DiskType.FILE, "sda", "scsi"))
        self.assertEqual((cdrom.device, cdrom.type, cdrom.dst), (DiskDevice.CDROM, DiskType.FILE, "hdc"))
        self.assertEqual(floppy.device, DiskDevice.FLOPPY)
        self.assertEqual(floppy.dst, "fda")

    def test_vnc_graphics(self):
        self.assertEqual(len(self.d.graphics), 1)
        self.assertEqual(self.d.graphics[0].type, GraphicsType.VNC)
        self.assertEqual(self.d.graphics[0].port, 5905)

    def test_defaults(self):
        d = self.tr.parse(b'displayName = "tiny"\n')

        self.assertEqual(d.memory_kib, 32 * 1024)
        self.assertEqual(d.vcpus, 1)
        self.assertEqual(d.arch, "i686")
        self.assertIsNone(d.uuid)
        self.assertEqual(d.disks, [])
        self.assertEqual(d.graphics, [])

    def test_raw_device_disk_is_block(self):
        d = self.tr.parse(b'displayName = "raw"\nscsi0:0.present = "TRUE"\nscsi0:0.fileName = "/dev/sdb"\n')

        self.assertEqual(d.disks[0].type, DiskType.BLOCK)

    def test_missing_display_name(self):
        with self.assertRaises(ParseError):
            self.tr.parse(b'memsize = "1024"\n')

    def test_bad_integer(self):
        with self.assertRaises(ParseError):
            self.tr.parse(b'displayName = "x"\nmemsize = "lots"\n')

    def test_bad_uuid(self):
        with self.assertRaises(ParseError):
            self.tr.parse(b'displayName = "x"\nuuid.bios = "zz"\n')

    def test_malformed_line(self):
        with self.assertRaises(ParseError):
            self.tr.parse(b'displayName = "x"\nthis is not an entry\n')

    def test_not_utf8(self):
        with self.assertRaises(ParseError):
            self.tr.parse(b'displayName = "\xff\xfe"\n')

    def test_keys_are_case_insensitive(self):
        self.assertEqual(parse_entries('DISPLAYNAME = "a"\n'), {"displayname": "a"})


class TestVmxFormat(unittest.TestCase):
    """Test DomainDef -> vmx."""

    def _domain(self):
        return DomainDef(
            name="web",
            uuid="564d8b2a-1c9f-4105-8e3a-4e5f60718293",
            memory_kib=1024 * 1024,
            vcpus=2,
            arch="x86_64",
            disks=[
                DiskDef(device=DiskDevice.DISK, type=DiskType.FILE, src="/vms/web/web.vmdk"),
                DiskDef(device=DiskDevice.CDROM, type=DiskType.FILE, src="/isos/boot.iso"),
            ],
            graphics=[GraphicsDef(type=GraphicsType.VNC, port=5900)],
        )

    def test_format_lines(self):
        text = VmxTranslator().format(self._domain()).decode("utf-8")

        self.assertIn('displayName = "web"\n', text)
        self.assertIn('uuid.bios = "56 4d 8b 2a 1c 9f 41 05-8e 3a 4e 5f 60 71 82 93"\n', text)
        self.assertIn('memsize = "1024"\n', text)
        self.assertIn('guestOS = "other-64"\n', text)
        self.assertIn('scsi0:0.fileName = "/vms/web/web.vmdk"\n', text)
        self.assertIn('ide0:0.deviceType = "cdrom-image"\n', text)
        self.assertIn('scsi0.present = "true"\n', text)
        self.assertIn('RemoteDisplay.vnc.port = "5900"\n', text)

    def test_format_escapes_quotes(self):
        d = DomainDef(name='say "hi"')

        self.assertIn(b'displayName = "say |22hi|22"', VmxTranslator().format(d))

    def test_scsi_unit_seven_is_skipped(self):
        disks = [DiskDef(src=f"/vms/big/d{i}.vmdk") for i in range(9)]
        text = VmxTranslator().format(DomainDef(name="big", disks=disks)).decode("utf-8")

        self.assertNotIn("scsi0:7.", text)
        self.assertIn('scsi0:8.fileName = "/vms/big/d7.vmdk"', text)

    def test_format_then_parse_keeps_essentials(self):
        tr = VmxTranslator()
        back = tr.parse(tr.format(self._domain()))

        self.assertEqual(back.name, "web")
        self.assertEqual(back.uuid, "564d8b2a-1c9f-4105-8e3a-4e5f60718293")
        self.assertEqual([x.src for x in back.disks], ["/vms/web/web.vmdk", "/isos/boot.iso"])

    def test_write_to_deduced_path(self):
        with tempfile.TemporaryDirectory() as td:
            d = DomainDef(name="web", disks=[DiskDef(src=f"{td}/web-disk.vmdk")])

            path = VmxTranslator().write(d)

            self.assertEqual(path, f"{td}/web.vmx")
            self.assertIn(b'displayName = "web"', Path(path).read_bytes())
            self.assertEqual(sorted(p.name for p in Path(td).iterdir()), ["web.vmx"])

    def test_write_needs_a_disk_without_explicit_path(self):
        with self.assertRaises(MissingDisk):
            VmxTranslator().write(DomainDef(name="nodisk"))

    def test_custom_file_name_mapping(self):
        tr = VmxTranslator(parse_file_name=lambda s: "[ds1] " + s, format_file_name=lambda s: s.replace("[ds1] ", ""))
        d = tr.parse(b'displayName = "m"\nscsi0:0.present = "TRUE"\nscsi0:0.fileName = "m.vmdk"\n')

        self.assertEqual(d.disks[0].src, "[ds1] m.vmdk")
        self.assertIn(b'scsi0:0.fileName = "m.vmdk"', tr.format(d))


if __name__ == "__main__":
    unittest.main()
