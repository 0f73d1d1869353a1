"""Tests for DropshelfAsync — the operation surface end to end."""

from __future__ import annotations

import asyncio

import pytest

from dropshelf._dropshelf_async import DropshelfAsync
from dropshelf.fs.exceptions import (
    AlreadyExistsError,
    DropshelfError,
    ErrorKind,
    PathNotFoundError,
    ShareDeniedError,
    ShareExpiredError,
    ShareNotFoundError,
    ValidationError,
)
from dropshelf.fs.permissions import Permission

ME = "a@b.com"


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestEndToEnd:
    async def test_upload_list_read_share_expire(self, shelf: DropshelfAsync):
        stored = await shelf.upload(ME, [("notes.txt", b"hello")])
        assert len(stored) == 1
        name = stored[0]

        entries = await shelf.list_files(ME)
        assert len(entries) == 1
        assert "notes.txt" in entries[0].name
        assert entries[0].is_directory is False
        assert entries[0].size_bytes == 5

        assert await shelf.read_content(ME, name) == "hello"

        share = await shelf.create_share(ME, [name], "read")
        shared = await shelf.access_share(share.token, name)
        assert shared.content == b"hello"
        assert shared.disposition == "inline"
        assert shared.permission is Permission.READ

        await shelf.registry.force_expiry(share.token)
        with pytest.raises(ShareExpiredError) as exc_info:
            await shelf.access_share(share.token, name)
        assert exc_info.value.kind is ErrorKind.EXPIRED

    async def test_download_share_is_attachment(self, shelf: DropshelfAsync):
        [name] = await shelf.upload(ME, [("report.pdf", b"%PDF")])
        share = await shelf.create_share(ME, [name], Permission.DOWNLOAD)
        shared = await shelf.access_share(share.token, name)
        assert shared.disposition == "attachment"
        assert shared.media_type == "application/pdf"


# ---------------------------------------------------------------------------
# Namespace operations
# ---------------------------------------------------------------------------


class TestNamespace:
    async def test_folders_and_files(self, shelf: DropshelfAsync):
        assert await shelf.create_folder(ME, "projects", "2026") == "projects/2026"
        filename = await shelf.create_file(ME, "projects/2026", "plan", "md")
        assert filename == "plan.md"
        with pytest.raises(AlreadyExistsError):
            await shelf.create_file(ME, "projects/2026", "plan", "md")

        await shelf.save_content(ME, "projects/2026/plan.md", "# Plan")
        assert await shelf.read_content(ME, "projects/2026/plan.md") == "# Plan"

        new_path = await shelf.rename(ME, "projects/2026/plan.md", "roadmap.md")
        assert new_path == "projects/2026/roadmap.md"

        handle = await shelf.download(ME, new_path)
        assert handle.filename == "roadmap.md"

        await shelf.delete(ME, "projects")
        assert await shelf.list_files(ME) == []

    async def test_missing_folder_lists_empty(self, shelf: DropshelfAsync):
        assert await shelf.list_files("nobody@x.com", "nowhere") == []

    async def test_identities_isolated(self, shelf: DropshelfAsync):
        await shelf.save_content(ME, "secret.txt", "mine")
        assert await shelf.list_files("other@b.com") == []
        with pytest.raises(PathNotFoundError):
            await shelf.read_content("other@b.com", "secret.txt")
        with pytest.raises(PathNotFoundError):
            await shelf.read_content("other@b.com", f"../{ME}/secret.txt")

    async def test_empty_upload(self, shelf: DropshelfAsync):
        with pytest.raises(ValidationError):
            await shelf.upload(ME, [])

    async def test_empty_identity(self, shelf: DropshelfAsync):
        with pytest.raises(ValidationError):
            await shelf.list_files("")

    @pytest.mark.parametrize("identity", [".", "..."])
    async def test_dot_identity_cannot_reach_other_namespaces(
        self, shelf: DropshelfAsync, identity: str
    ):
        [name] = await shelf.upload(ME, [("secret.txt", b"top secret")])

        with pytest.raises(ValidationError):
            await shelf.list_files(identity)
        with pytest.raises(ValidationError):
            await shelf.read_content(identity, f"{ME}/{name}")
        with pytest.raises(ValidationError):
            await shelf.create_share(identity, [f"{ME}/{name}"], "read")
        with pytest.raises(ValidationError):
            await shelf.delete(identity, ME)
        assert await shelf.read_content(ME, name) == "top secret"

    async def test_errors_share_base_class(self, shelf: DropshelfAsync):
        with pytest.raises(DropshelfError):
            await shelf.delete(ME, "missing.txt")


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------


class TestSharing:
    async def test_share_url(self, shelf: DropshelfAsync):
        result = await shelf.create_share(ME, ["a.txt"], "read")
        assert result.url == f"https://files.example.test/share/{result.token}"
        assert result.share.live is True

    async def test_share_info(self, shelf: DropshelfAsync):
        result = await shelf.create_share(ME, ["a.txt", "b.txt"], "download")
        info = await shelf.get_share_info(result.token)
        assert info.owner_identity == ME
        assert info.files == ["a.txt", "b.txt"]
        assert info.permission == "download"
        assert info.live is True

    async def test_share_info_unknown(self, shelf: DropshelfAsync):
        with pytest.raises(ShareNotFoundError):
            await shelf.get_share_info("nope")

    async def test_share_info_expired_reports_not_live(self, shelf: DropshelfAsync):
        result = await shelf.create_share(ME, ["a.txt"], "read")
        await shelf.registry.force_expiry(result.token)
        info = await shelf.get_share_info(result.token)
        assert info.live is False

    async def test_share_validation(self, shelf: DropshelfAsync):
        with pytest.raises(ValidationError):
            await shelf.create_share(ME, [], "read")
        with pytest.raises(ValidationError):
            await shelf.create_share("", ["a.txt"], "read")

    async def test_access_denied(self, shelf: DropshelfAsync):
        await shelf.save_content(ME, "public.txt", "pub")
        await shelf.save_content(ME, "private.txt", "priv")
        result = await shelf.create_share(ME, ["public.txt"], "read")
        with pytest.raises(ShareDeniedError) as exc_info:
            await shelf.access_share(result.token, "private.txt")
        assert exc_info.value.kind is ErrorKind.DENY

    async def test_access_unknown_token(self, shelf: DropshelfAsync):
        with pytest.raises(ShareNotFoundError):
            await shelf.access_share("nope", "a.txt")

    async def test_access_dangling(self, shelf: DropshelfAsync):
        await shelf.save_content(ME, "gone.txt", "x")
        result = await shelf.create_share(ME, ["gone.txt"], "read")
        await shelf.delete(ME, "gone.txt")
        with pytest.raises(PathNotFoundError):
            await shelf.access_share(result.token, "gone.txt")

    async def test_revoke_and_list(self, shelf: DropshelfAsync):
        first = await shelf.create_share(ME, ["a.txt"], "read")
        await shelf.create_share(ME, ["b.txt"], "read")
        assert len(await shelf.list_shares(ME)) == 2

        await shelf.revoke_share(first.token)
        assert len(await shelf.list_shares(ME)) == 1
        with pytest.raises(ShareNotFoundError):
            await shelf.revoke_share(first.token)

    async def test_purge_expired(self, shelf: DropshelfAsync):
        result = await shelf.create_share(ME, ["a.txt"], "read")
        await shelf.registry.force_expiry(result.token)
        assert await shelf.purge_expired_shares() == 1

    async def test_concurrent_share_creation(self, shelf: DropshelfAsync):
        results = await asyncio.gather(
            *(shelf.create_share(ME, [f"f{i}.txt"], "read") for i in range(20))
        )
        for result in results:
            info = await shelf.get_share_info(result.token)
            assert info.files == result.share.files

    async def test_shares_survive_reopen(self, config):
        async with DropshelfAsync(config) as first:
            await first.save_content(ME, "a.txt", "persisted")
            result = await first.create_share(ME, ["a.txt"], "read")

        async with DropshelfAsync(config) as second:
            shared = await second.access_share(result.token, "a.txt")
            assert shared.content == b"persisted"


# ---------------------------------------------------------------------------
# Previews / lifecycle
# ---------------------------------------------------------------------------


class TestPreviews:
    async def test_preview_round_trip(self, shelf: DropshelfAsync):
        result = await shelf.create_preview("<p>hi</p>", "https://origin.test/")
        assert result.url == f"https://files.example.test/preview/{result.token}"
        record = await shelf.get_preview(result.token)
        assert record.content == "<p>hi</p>"

    async def test_preview_missing(self, shelf: DropshelfAsync):
        with pytest.raises(ShareNotFoundError):
            await shelf.get_preview("nope")

    async def test_preview_requires_content(self, shelf: DropshelfAsync):
        with pytest.raises(ValidationError):
            await shelf.create_preview("")


class TestLifecycle:
    async def test_registry_requires_open(self, config):
        shelf = DropshelfAsync(config)
        with pytest.raises(DropshelfError, match="not open"):
            await shelf.create_share(ME, ["a.txt"], "read")

    async def test_health(self, shelf: DropshelfAsync):
        status = await shelf.health()
        assert status.ok is True
        assert status.registry is True

    async def test_health_when_closed(self, config):
        shelf = DropshelfAsync(config)
        status = await shelf.health()
        assert status.ok is False

    async def test_overrides(self, tmp_path):
        async with DropshelfAsync(data_dir=tmp_path) as shelf:
            assert shelf.config.storage_root == tmp_path / "uploads"
            assert (tmp_path / "shares.db").exists()
