"""ZIP container access for EPUB files."""

import logging
import posixpath
import shutil
import tempfile
import zipfile
from pathlib import Path

from epub_tools.core.dom import NAMESPACES, get_attrib, parse_xml
from epub_tools.errors import ContainerUnreadable, MalformedDocument

log = logging.getLogger(__name__)


def _clone_zip_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    cloned = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    cloned.compress_type = info.compress_type
    cloned.comment = info.comment
    cloned.external_attr = info.external_attr
    cloned.create_system = info.create_system
    return cloned


class EpubArchive:
    """An open EPUB container.

    Paths handed to the entry methods are relative to the directory of the
    package document unless ``relative=False`` is passed. Writes and deletes
    are staged in memory until :meth:`save`.
    """

    CONTAINER_PATH = "META-INF/container.xml"
    PACKAGE_MEDIA_TYPE = "application/oebps-package+xml"
    MIMETYPE_PATH = "mimetype"

    def __init__(self, path: Path):
        self.path = Path(path)
        self._zip = self._open()
        # path -> new content, or None for a deleted entry
        self._pending: dict[str, bytes | None] = {}
        try:
            self.root_file = self._find_root_file()
        except Exception:
            self._zip.close()
            raise
        self.root_dir = posixpath.dirname(self.root_file)
        log.info(f"Opened {self.path} (package document: {self.root_file})")

    def _open(self) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(self.path, "r")
        except FileNotFoundError as e:
            raise ContainerUnreadable("Failed to read epub file. No such file.", str(self.path)) from e
        except zipfile.BadZipFile as e:
            raise ContainerUnreadable("Failed to read epub file. Not a zip archive.", str(self.path)) from e
        except OSError as e:
            raise ContainerUnreadable(f"Failed to read epub file. {e}", str(self.path)) from e

    def _find_root_file(self) -> str:
        data = self.read_entry(self.CONTAINER_PATH, relative=False)
        try:
            container = parse_xml(data, self.CONTAINER_PATH)
        except MalformedDocument as e:
            raise ContainerUnreadable(e.message, self.CONTAINER_PATH) from e
        nodes = container.xpath(
            "//ocf:rootfiles/ocf:rootfile[@media-type=$media_type]",
            namespaces=NAMESPACES,
            media_type=self.PACKAGE_MEDIA_TYPE,
        )
        root_file = get_attrib(nodes[0], "full-path") if nodes else ""
        if not root_file:
            raise ContainerUnreadable("No package document declared in container", self.CONTAINER_PATH)
        return root_file

    def resolve(self, path: str, relative: bool = True) -> str:
        """Archive path of an entry."""
        if relative and self.root_dir:
            path = posixpath.join(self.root_dir, path)
        return posixpath.normpath(path)

    def has_entry(self, path: str, relative: bool = True) -> bool:
        name = self.resolve(path, relative)
        if name in self._pending:
            return self._pending[name] is not None
        try:
            self._zip.getinfo(name)
        except KeyError:
            return False
        return True

    def read_entry(self, path: str, relative: bool = True) -> bytes:
        name = self.resolve(path, relative)
        if name in self._pending:
            data = self._pending[name]
            if data is None:
                raise ContainerUnreadable("Failed to access epub container data", name)
            return data
        try:
            return self._zip.read(name)
        except KeyError as e:
            raise ContainerUnreadable("Failed to access epub container data", name) from e
        except (zipfile.BadZipFile, OSError) as e:
            raise ContainerUnreadable(f"Failed to access epub container data: {e}", name) from e

    def write_entry(self, path: str, data: bytes, relative: bool = True) -> None:
        name = self.resolve(path, relative)
        log.debug(f"Staged write of {name} ({len(data)} bytes)")
        self._pending[name] = data

    def delete_entry(self, path: str, relative: bool = True) -> None:
        name = self.resolve(path, relative)
        if self.has_entry(name, relative=False):
            log.debug(f"Staged deletion of {name}")
            self._pending[name] = None

    def names(self) -> list[str]:
        """All entry names, staged changes included."""
        names = [info.filename for info in self._zip.infolist()]
        names = [n for n in names if self._pending.get(n, b"") is not None]
        names.extend(n for n, d in self._pending.items() if d is not None and n not in names)
        return names

    def save(self) -> None:
        """Write staged changes back to the file."""
        if not self._pending:
            return

        tmp_handle = tempfile.NamedTemporaryFile(
            prefix=f"{self.path.stem}.",
            suffix=".epub",
            dir=str(self.path.parent),
            delete=False,
        )
        tmp_path = Path(tmp_handle.name)
        tmp_handle.close()

        try:
            with zipfile.ZipFile(tmp_path, "w", zipfile.ZIP_DEFLATED) as dst:
                # mimetype must come first and be stored uncompressed
                if self.has_entry(self.MIMETYPE_PATH, relative=False):
                    dst.writestr(
                        self.MIMETYPE_PATH,
                        self.read_entry(self.MIMETYPE_PATH, relative=False),
                        compress_type=zipfile.ZIP_STORED,
                    )
                for info in self._zip.infolist():
                    if info.filename == self.MIMETYPE_PATH or info.filename in self._pending:
                        continue
                    with self._zip.open(info, "r") as src_stream:
                        with dst.open(_clone_zip_info(info), "w") as dst_stream:
                            shutil.copyfileobj(src_stream, dst_stream)
                for name, data in self._pending.items():
                    if data is None or name == self.MIMETYPE_PATH:
                        continue
                    dst.writestr(name, data)

            self._zip.close()
            try:
                tmp_path.replace(self.path)
            finally:
                self._zip = self._open()
        finally:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)

        log.info(f"Saved {len(self._pending)} change(s) to {self.path}")
        self._pending.clear()

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "EpubArchive":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
