import unittest
from unittest.mock import AsyncMock, MagicMock

from bson import ObjectId

from codeql_fly.models import Repo
from codeql_fly.repositories import DuplicateLedgerEntryError
from codeql_fly.services.github import GithubConflictError
from codeql_fly.services.repo_service import RepositoryService


class TestRepositoryService(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.gateway = MagicMock()
        self.gateway.create_branch_from_tag = AsyncMock(return_value="codeql-v1")
        self.gateway.create_branch_from_ref = AsyncMock(return_value="codeql-main")
        self.gateway.get_default_branch = AsyncMock(return_value="main")
        self.gateway.upsert_workflow_definition = AsyncMock()
        self.gateway.dispatch_workflow = AsyncMock()
        self.gateway.list_installation_repositories = AsyncMock(return_value=[])

        self.service = RepositoryService(MagicMock(), self.gateway)
        self.service.installations = MagicMock()
        self.service.repos = MagicMock()
        self.service.ledger = MagicMock()

    async def test_enable_from_tag(self):
        branch = await self.service.enable("octo", "demo", 7, "v1")

        self.assertEqual(branch, "codeql-v1")
        self.gateway.create_branch_from_tag.assert_awaited_once_with("octo", "demo", "v1", 7)
        self.gateway.upsert_workflow_definition.assert_awaited_once_with(
            "octo", "demo", "codeql-v1", "v1", 7
        )
        kwargs = self.service.ledger.open.call_args.kwargs
        self.assertEqual(kwargs["release_tag"], "v1")
        self.assertEqual(kwargs["source_branch"], "main")
        self.assertTrue(kwargs["provisioned"])
        self.service.repos.mark_has_workflow_by_name.assert_called_once_with("octo", "demo")

    async def test_enable_without_tag_branches_from_main(self):
        branch = await self.service.enable("octo", "demo", 7)

        self.assertEqual(branch, "codeql-main")
        self.gateway.create_branch_from_tag.assert_not_awaited()
        self.gateway.create_branch_from_ref.assert_awaited_once_with(
            "octo", "demo", "main", "codeql-main", 7
        )

    async def test_enable_twice_is_not_an_error(self):
        self.service.ledger.open.side_effect = DuplicateLedgerEntryError(
            "octo", "demo", "codeql-v1"
        )
        self.assertEqual(await self.service.enable("octo", "demo", 7, "v1"), "codeql-v1")

    async def test_enable_tolerates_workflow_written_by_release(self):
        self.gateway.upsert_workflow_definition.side_effect = GithubConflictError(
            "Failed to write", 422, "sha wasn't supplied"
        )
        self.service.ledger.find_by_temp_branch.return_value = MagicMock(id=ObjectId())

        self.assertEqual(await self.service.enable("octo", "demo", 7, "v1"), "codeql-v1")

    async def test_enable_conflict_without_entry_propagates(self):
        self.gateway.upsert_workflow_definition.side_effect = GithubConflictError(
            "Failed to write", 422, "sha wasn't supplied"
        )
        self.service.ledger.find_by_temp_branch.return_value = None

        with self.assertRaises(GithubConflictError):
            await self.service.enable("octo", "demo", 7, "v1")
        self.service.ledger.open.assert_not_called()

    async def test_trigger_scan_marks_known_entry(self):
        entry = MagicMock(id=ObjectId())
        self.service.ledger.find_by_temp_branch.return_value = entry

        await self.service.trigger_scan("octo", "demo", "codeql-v1", 7)

        self.gateway.dispatch_workflow.assert_awaited_once_with("octo", "demo", "codeql-v1", 7)
        self.service.ledger.mark_dispatched.assert_called_once_with(entry.id)

    async def test_sync_installation_replaces_repo_set(self):
        self.gateway.list_installation_repositories.return_value = [
            {"id": 1, "name": "a", "owner": {"login": "octo"}},
            {"id": 2, "name": "b", "owner": {"login": "octo"}},
        ]
        self.service.installations.find_by_installation_id.return_value = None
        stored = [
            Repo(_id=ObjectId(), repo_id=1, owner="octo", name="a"),
            Repo(_id=ObjectId(), repo_id=2, owner="octo", name="b"),
        ]
        self.service.repos.upsert_repo.side_effect = stored

        result = await self.service.sync_installation(7)

        self.assertEqual(result, {"ok": True, "installed_count": 2})
        account = self.service.installations.upsert_installation.call_args.args[1]
        self.assertEqual(account["login"], "octo")
        self.service.installations.replace_repos.assert_called_once_with(
            7, [r.id for r in stored]
        )


if __name__ == "__main__":
    unittest.main()
