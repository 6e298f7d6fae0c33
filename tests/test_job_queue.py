from app.services import job_queue


async def test_claim_batch_is_oldest_first_per_site_and_bounded(db, session):
    await db.add_jobs(
        {"id": 3, "site_id": "MLC", "category_id": "MLC3"},
        {"id": 1, "site_id": "MLC", "category_id": "MLC1"},
        {"id": 2, "site_id": "MLA", "category_id": "MLA2"},
        {"id": 4, "site_id": "MLC", "category_id": "MLC4", "status": "done"},
        {"id": 5, "site_id": "MLC", "category_id": "MLC5"},
    )

    jobs = await job_queue.claim_batch(session, "MLC", 2)

    assert [j.id for j in jobs] == [1, 3]
    assert all(j.status == "pending" for j in jobs)


async def test_mark_processing_increments_attempts_and_clears_error(db, session):
    await db.add_jobs({"id": 1, "site_id": "MLC", "category_id": "MLC1", "attempts": 2, "last_error": "old"})

    assert await job_queue.mark_processing(session, 1, 2) is True

    job = await db.job(1)
    assert (job.status, job.attempts, job.last_error) == ("processing", 3, None)


async def test_mark_processing_skips_jobs_no_longer_pending(db, session):
    await db.add_jobs({"id": 1, "site_id": "MLC", "category_id": "MLC1", "status": "processing", "attempts": 1})

    assert await job_queue.mark_processing(session, 1, 0) is False

    job = await db.job(1)
    assert (job.status, job.attempts) == ("processing", 1)


async def test_mark_done_and_mark_error(db, session):
    await db.add_jobs(
        {"id": 1, "site_id": "MLC", "category_id": "MLC1", "status": "processing", "last_error": "x"},
        {"id": 2, "site_id": "MLC", "category_id": "MLC2", "status": "processing"},
    )

    await job_queue.mark_done(session, 1)
    await job_queue.mark_error(session, 2, "ML 500 {}")

    done, failed = await db.job(1), await db.job(2)
    assert (done.status, done.last_error) == ("done", None)
    assert (failed.status, failed.last_error) == ("error", "ML 500 {}")
