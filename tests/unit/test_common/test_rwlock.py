"""ReadWriteLock 테스트"""

import asyncio
import pytest

from opsrag.common.rwlock import ReadWriteLock


class TestReadWriteLock:
    """Reader/Writer 배타 테스트"""

    @pytest.mark.asyncio
    async def test_readers_run_concurrently(self):
        """
        Given: 두 reader
        When: 동시에 read() 진입
        Then: 둘 다 동시에 락 안에 있음
        """
        lock = ReadWriteLock()
        observed = []

        async def reader():
            async with lock.read():
                observed.append(lock.readers)
                await asyncio.sleep(0.01)

        await asyncio.gather(reader(), reader())

        assert max(observed) == 2
        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_excludes_readers(self):
        """
        Given: writer가 락 보유 중
        When: reader가 진입 시도
        Then: writer가 끝난 뒤에만 진입
        """
        lock = ReadWriteLock()
        order = []

        async def writer():
            async with lock.write():
                order.append("writer_start")
                await asyncio.sleep(0.02)
                order.append("writer_end")

        async def reader():
            await asyncio.sleep(0.005)
            async with lock.read():
                order.append("reader")

        await asyncio.gather(writer(), reader())

        assert order == ["writer_start", "writer_end", "reader"]

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self):
        """
        Given: reader가 락 보유 중
        When: writer가 진입 시도
        Then: reader가 끝난 뒤 진입, 그동안 writing=False
        """
        lock = ReadWriteLock()
        order = []

        async def reader():
            async with lock.read():
                order.append("reader_start")
                await asyncio.sleep(0.02)
                assert lock.writing is False
                order.append("reader_end")

        async def writer():
            await asyncio.sleep(0.005)
            async with lock.write():
                assert lock.writing is True
                order.append("writer")

        await asyncio.gather(reader(), writer())

        assert order == ["reader_start", "reader_end", "writer"]
        assert lock.writing is False

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        """
        Given: reader 보유 중 writer 대기
        When: 새 reader 진입 시도
        Then: 대기 중인 writer가 먼저 실행
        """
        lock = ReadWriteLock()
        order = []

        async def first_reader():
            async with lock.read():
                await asyncio.sleep(0.02)
                order.append("first_reader")

        async def writer():
            await asyncio.sleep(0.005)
            async with lock.write():
                order.append("writer")

        async def late_reader():
            await asyncio.sleep(0.01)
            async with lock.read():
                order.append("late_reader")

        await asyncio.gather(first_reader(), writer(), late_reader())

        assert order == ["first_reader", "writer", "late_reader"]

    @pytest.mark.asyncio
    async def test_lock_released_on_exception(self):
        """예외가 나도 락 해제"""
        lock = ReadWriteLock()

        with pytest.raises(RuntimeError):
            async with lock.write():
                raise RuntimeError("boom")

        assert lock.writing is False
        async with lock.read():
            assert lock.readers == 1
