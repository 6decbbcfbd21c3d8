from __future__ import annotations

import threading
from collections import Counter
from datetime import timedelta

from src.attendance_notifier.attendance_notifier.core.enums import EmailStatus
from src.attendance_notifier.attendance_notifier.notifications.model import NewScheduledEmail
from tests.fakes import ScriptedTransport


def _enqueue(p, count):
    ids = []
    for i in range(count):
        email, _ = p.emails.create_unless_exists(
            NewScheduledEmail(
                to=(f"parent{i}@example.com",),
                subject=f"Notice {i}",
                html=f"<p>{i}</p>",
                scheduled_at=p.clock() - timedelta(seconds=1),
            )
        )
        ids.append(email.email_id)
    return ids


def test_only_one_claim_wins(pipeline):
    (email_id,) = _enqueue(pipeline, 1)
    barrier = threading.Barrier(8)
    won = []

    def attempt(n):
        barrier.wait()
        if pipeline.emails.claim(email_id, claim_token=f"worker-{n}", now=pipeline.clock()) is not None:
            won.append(n)

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(won) == 1
    assert pipeline.emails.get_by_id(email_id).claim_token == f"worker-{won[0]}"


def test_concurrent_workers_send_each_email_once(pipeline):
    ids = _enqueue(pipeline, 30)
    transport = ScriptedTransport()
    workers = [pipeline.new_worker(transport=transport) for _ in range(4)]
    barrier = threading.Barrier(len(workers))
    summaries = []

    def run(worker):
        barrier.wait()
        for _ in range(5):
            summaries.append(worker.run_once())

    threads = [threading.Thread(target=run, args=(w,)) for w in workers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    per_subject = Counter(m.subject for m in transport.sent)
    assert len(per_subject) == 30
    assert set(per_subject.values()) == {1}
    assert sum(s.sent for s in summaries) == 30
    assert all(pipeline.emails.get_by_id(i).status == EmailStatus.SENT for i in ids)
