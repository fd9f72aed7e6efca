import unittest
from unittest.mock import MagicMock

from google.api_core import exceptions

from shared.types import Priority, Task
from taskboard.db import FirestoreTaskStore, InMemoryTaskStore
from taskboard.errors import TaskNotFoundError


def fields_for(owner, title="Buy milk", **extra):
    return Task(id="", title=title, owner_identity=owner, **extra).to_document()


class InMemoryTaskStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryTaskStore()

    def test_list_is_scoped_to_owner(self):
        mine = self.store.create_task(fields_for("a@x.com"))
        self.store.create_task(fields_for("b@x.com"))

        tasks = self.store.list_tasks("a@x.com")

        self.assertEqual([t.id for t in tasks], [mine])
        self.assertEqual(tasks[0].owner_identity, "a@x.com")

    def test_update_is_partial(self):
        task_id = self.store.create_task(fields_for("a@x.com", description="2%"))
        self.store.update_task(task_id, {"completed": True})

        task = self.store.list_tasks("a@x.com")[0]
        self.assertTrue(task.completed)
        self.assertEqual(task.description, "2%")

    def test_update_missing_task(self):
        with self.assertRaises(TaskNotFoundError):
            self.store.update_task("missing", {"completed": True})

    def test_delete_missing_task_is_a_no_op(self):
        self.store.delete_task("missing")

    def test_stored_documents_are_copies(self):
        fields = fields_for("a@x.com")
        task_id = self.store.create_task(fields)
        fields["title"] = "changed"
        self.assertEqual(self.store.documents[task_id]["title"], "Buy milk")


class FirestoreTaskStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.collection = self.client.collection.return_value
        self.store = FirestoreTaskStore(client=self.client)

    def test_list_queries_by_owner(self):
        snapshot = MagicMock(id="t1")
        snapshot.to_dict.return_value = {
            "title": "Buy milk",
            "description": "2%",
            "priority": "High",
            "completed": True,
            "ownerIdentity": "a@x.com",
        }
        self.collection.where.return_value.stream.return_value = [snapshot]

        tasks = self.store.list_tasks("a@x.com")

        self.client.collection.assert_called_with("tasks")
        query_filter = self.collection.where.call_args.kwargs["filter"]
        self.assertEqual(query_filter.field_path, "ownerIdentity")
        self.assertEqual(query_filter.op_string, "==")
        self.assertEqual(query_filter.value, "a@x.com")
        self.assertEqual(
            tasks,
            [
                Task(
                    id="t1",
                    title="Buy milk",
                    description="2%",
                    priority=Priority.HIGH,
                    completed=True,
                    owner_identity="a@x.com",
                )
            ],
        )

    def test_create_returns_generated_id(self):
        self.collection.add.return_value = (None, MagicMock(id="generated"))
        fields = fields_for("a@x.com")

        self.assertEqual(self.store.create_task(fields), "generated")
        self.collection.add.assert_called_once_with(fields)

    def test_update_and_delete_address_one_document(self):
        self.store.update_task("t1", {"completed": True})
        self.store.delete_task("t1")

        self.collection.document.assert_called_with("t1")
        self.collection.document.return_value.update.assert_called_once_with(
            {"completed": True}
        )
        self.collection.document.return_value.delete.assert_called_once_with()

    def test_update_missing_document(self):
        self.collection.document.return_value.update.side_effect = (
            exceptions.NotFound("No document to update")
        )
        with self.assertRaises(TaskNotFoundError):
            self.store.update_task("t1", {"completed": True})

    def test_custom_collection(self):
        store = FirestoreTaskStore(client=self.client, collection="todos")
        store.delete_task("t1")
        self.client.collection.assert_called_with("todos")


if __name__ == "__main__":
    unittest.main()
