"""Integration tests for course-scoped semantic search."""
import pytest

from app.models.course import Course
from app.models.document import Document, VectorStoreEntry
from app.services.semantic_search import SemanticSearchService
from app.services.vector_store import vector_store_service


async def add_indexed_document(session, course, title, rows, processed=True):
    document = Document(title=title, type="text", content=title, course_id=course.id, processed=processed)
    session.add(document)
    await session.flush()
    for chunk, embedding in rows:
        await vector_store_service.put(session, document.id, chunk, embedding)
    await session.commit()
    return document


@pytest.fixture
def query_llm(make_fake_llm):
    return make_fake_llm(default=[1.0, 0.0])


@pytest.fixture
def search_service(query_llm):
    return SemanticSearchService(llm=query_llm)


@pytest.mark.integration
class TestSemanticSearch:

    @pytest.mark.asyncio
    async def test_empty_course(self, db_session, sample_course, search_service, query_llm):
        assert await search_service.search(db_session, "anything", sample_course.id) == []
        query_llm.generate_embedding.assert_not_called()

    @pytest.mark.asyncio
    async def test_ranks_by_similarity(self, db_session, sample_course, search_service):
        beta = await add_indexed_document(db_session, sample_course, "Beta notes", [("beta chunk", [0.0, 1.0])])
        alpha = await add_indexed_document(db_session, sample_course, "Alpha notes", [("alpha chunk", [1.0, 0.0])])

        results = await search_service.search(db_session, "alpha?", sample_course.id)

        assert [r.chunk for r in results] == ["alpha chunk", "beta chunk"]
        assert [r.document_id for r in results] == [alpha.id, beta.id]
        assert results[0].similarity == pytest.approx(1.0)
        assert results[1].similarity == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_zero_limit_returns_nothing(self, db_session, sample_course, search_service):
        await add_indexed_document(db_session, sample_course, "Notes", [("chunk", [1.0, 0.0])])

        assert await search_service.search(db_session, "q", sample_course.id, limit=0) == []

    @pytest.mark.asyncio
    async def test_limit(self, db_session, sample_course, search_service):
        rows = [(f"chunk {i}", [1.0, i / 10]) for i in range(8)]
        await add_indexed_document(db_session, sample_course, "Notes", rows)

        results = await search_service.search(db_session, "q", sample_course.id, limit=3)

        assert [r.chunk for r in results] == ["chunk 0", "chunk 1", "chunk 2"]

    @pytest.mark.asyncio
    async def test_only_processed_documents_of_the_course(self, db_session, sample_user, sample_course, search_service):
        other_course = Course(name="Chemistry", user_id=sample_user.id)
        db_session.add(other_course)
        await db_session.commit()
        await add_indexed_document(db_session, sample_course, "Pending", [("pending chunk", [1.0, 0.0])], processed=False)
        await add_indexed_document(db_session, other_course, "Other", [("other chunk", [1.0, 0.0])])
        await add_indexed_document(db_session, sample_course, "Mine", [("my chunk", [0.5, 0.5])])

        results = await search_service.search(db_session, "q", sample_course.id)

        assert [r.chunk for r in results] == ["my chunk"]

    @pytest.mark.asyncio
    async def test_processed_document_without_rows(self, db_session, sample_course, search_service):
        await add_indexed_document(db_session, sample_course, "Empty", [])
        assert await search_service.search(db_session, "q", sample_course.id) == []

    @pytest.mark.asyncio
    async def test_unparseable_embedding_is_skipped(self, db_session, sample_course, search_service):
        document = await add_indexed_document(db_session, sample_course, "Notes", [("good", [1.0, 0.0])])
        db_session.add(VectorStoreEntry(document_id=document.id, chunk="bad", embedding="not json"))
        await db_session.commit()

        results = await search_service.search(db_session, "q", sample_course.id)

        assert [r.chunk for r in results] == ["good"]

    @pytest.mark.asyncio
    async def test_mismatched_dimensions_score_zero(self, db_session, sample_course, search_service):
        await add_indexed_document(db_session, sample_course, "Notes", [("3d", [1.0, 0.0, 0.0])])

        results = await search_service.search(db_session, "q", sample_course.id)

        assert results[0].similarity == 0.0

    @pytest.mark.asyncio
    async def test_embedding_failure_returns_empty(self, db_session, sample_course, search_service, query_llm):
        await add_indexed_document(db_session, sample_course, "Notes", [("chunk", [1.0, 0.0])])
        query_llm.generate_embedding.side_effect = RuntimeError("api down")

        assert await search_service.search(db_session, "q", sample_course.id) == []

    @pytest.mark.asyncio
    async def test_deleted_document_leaves_no_rows(self, db_session, sample_course, search_service):
        document = await add_indexed_document(db_session, sample_course, "Notes", [("a", [1.0, 0.0]), ("b", [0.0, 1.0])])

        await vector_store_service.delete_all_for_document(db_session, document.id)
        await db_session.delete(document)
        await db_session.commit()

        assert await vector_store_service.count_for_document(db_session, document.id) == 0
        assert await search_service.search(db_session, "q", sample_course.id) == []
