"""
Habit store tests: PostgreSQL variant
======================================
Runs the store against an in-process stand-in for the asyncpg pool.

Usage:
    python -m pytest tests/test_postgres_store.py -v
"""
import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.errors import NotFoundError, PersistenceError
from services.store import PostgresHabitStore


class FakePool:
    """Keeps rows in a dict and answers the three statements the store issues."""

    def __init__(self, fail_with=None):
        self.rows = {}
        self.next_id = 1
        self.queries = []
        self.fail_with = fail_with
        self.closed = False

    def _record(self, query, args):
        self.queries.append((" ".join(query.split()), args))
        if self.fail_with is not None:
            raise self.fail_with

    async def fetchval(self, query, *args):
        self._record(query, args)
        assert query.startswith("INSERT INTO habits")
        name, description, completed = args
        habit_id = self.next_id
        self.next_id += 1
        self.rows[habit_id] = {
            "id": habit_id, "name": name, "description": description, "completed": completed,
        }
        return habit_id

    async def fetch(self, query, *args):
        self._record(query, args)
        return [self.rows[k] for k in sorted(self.rows)]

    async def fetchrow(self, query, *args):
        self._record(query, args)
        row = self.rows.get(args[0])
        if row is None:
            return None
        row["completed"] = True
        return dict(row)

    async def close(self):
        self.closed = True


class TestPostgresHabitStore(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.pool = FakePool()
        self.store = PostgresHabitStore(self.pool)

    async def test_create_inserts_and_reads_back_id(self):
        habit = await self.store.create("Exercise", "Daily exercise routine")
        self.assertEqual(habit.id, 1)
        self.assertFalse(habit.completed)

        query, args = self.pool.queries[-1]
        self.assertIn("RETURNING id", query)
        self.assertEqual(args, ("Exercise", "Daily exercise routine", False))

    async def test_list_empty_is_empty_list(self):
        self.assertEqual(await self.store.list(), [])

    async def test_list_maps_null_description(self):
        self.pool.rows[7] = {"id": 7, "name": "Walk", "description": None, "completed": False}
        habits = await self.store.list()
        self.assertEqual(len(habits), 1)
        self.assertEqual(habits[0].description, "")
        self.assertEqual(habits[0].to_json(), {"id": 7, "name": "Walk", "completed": False})

    async def test_complete(self):
        habit = await self.store.create("Read")
        done = await self.store.complete(habit.id)
        self.assertTrue(done.completed)
        query, args = self.pool.queries[-1]
        self.assertTrue(query.startswith("UPDATE habits SET completed = TRUE WHERE id = $1"))
        self.assertEqual(args, (habit.id,))

    async def test_complete_unknown_id(self):
        with self.assertRaises(NotFoundError):
            await self.store.complete(999)

    async def test_complete_outside_int4_skips_query(self):
        for habit_id in (2**31, -2**31 - 1, 2**63 - 1):
            with self.assertRaises(NotFoundError):
                await self.store.complete(habit_id)
        self.assertEqual(self.pool.queries, [])

    async def test_errors_become_persistence_errors(self):
        store = PostgresHabitStore(FakePool(fail_with=ConnectionRefusedError("connection refused")))
        with self.assertRaises(PersistenceError) as ctx:
            await store.create("Read")
        self.assertIn("connection refused", ctx.exception.message)

        with self.assertRaises(PersistenceError):
            await store.list()
        with self.assertRaises(PersistenceError):
            await store.complete(1)

    async def test_close_closes_pool(self):
        await self.store.close()
        self.assertTrue(self.pool.closed)


if __name__ == "__main__":
    unittest.main()
