"""A scripted stand-in for a mysql.connector connection.

Each ``execute`` pops the next scripted step: a dict with optional
``rowcount``, ``rows`` (fetch results), ``lastrowid`` or ``raise``.
"""
from __future__ import annotations

from collections import deque


class ScriptedCursor:
    def __init__(self, conn):
        self._conn = conn
        self._rows = []
        self.rowcount = -1
        self.lastrowid = None

    def execute(self, sql, params=()):
        self._conn.executed.append((" ".join(sql.split()), tuple(params)))
        step = self._conn.steps.popleft() if self._conn.steps else {}
        if "raise" in step:
            raise step["raise"]
        self.rowcount = step.get("rowcount", -1)
        self.lastrowid = step.get("lastrowid")
        self._rows = list(step.get("rows", []))

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def close(self):
        pass


class ScriptedConnection:
    def __init__(self, steps):
        self.steps = deque(steps)
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = 0

    def cursor(self, dictionary=True):
        return ScriptedCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed += 1


class ScriptedConnectionFactory:
    """Hands out one shared ScriptedConnection, like DatabaseConnection.connect."""

    def __init__(self, *steps):
        self.conn = ScriptedConnection(steps)

    def connect(self):
        return self.conn

    @property
    def executed(self):
        return self.conn.executed
