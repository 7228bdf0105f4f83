"""FirestoreEntityRepository with a mocked Firestore client."""
from unittest.mock import MagicMock

import pytest

from casegraph.errors import NotFoundError
from casegraph.models.entity import (
    Connection,
    EntityKey,
    EntityType,
    Person,
    Relationship,
    RelationshipQuery,
)
from casegraph.services.firestore_repository import FirestoreEntityRepository


def _make_repository() -> FirestoreEntityRepository:
    """Create a repository with a mocked Firestore client."""
    repository = FirestoreEntityRepository.__new__(FirestoreEntityRepository)
    repository.db = MagicMock()
    return repository


def _doc(doc_id, data, exists=True):
    doc = MagicMock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = dict(data) if data is not None else None
    return doc


def _collections(repository, mapping):
    """Route db.collection(name) to a dedicated mock per collection name."""
    refs = {name: MagicMock() for name in mapping}
    for name, docs in mapping.items():
        refs[name].stream.return_value = docs
    repository.db.collection.side_effect = lambda name: refs[name]
    return refs


class TestReads:
    @pytest.mark.asyncio
    async def test_list_people_uses_doc_id(self):
        repository = _make_repository()
        _collections(repository, {
            "people": [
                _doc("1", {"first_name": "Alice", "connections": [{"person_id": 2, "type": "friend"}]}),
                _doc("2", None),
            ],
        })

        people = await repository.list_people()

        assert len(people) == 1
        assert people[0].id == 1
        assert people[0].connections[0].target_id == 2

    @pytest.mark.asyncio
    async def test_unreadable_document_skipped(self):
        repository = _make_repository()
        _collections(repository, {
            "businesses": [_doc("10", {"name": "Acme"}), _doc("11", {"id": "not-a-number"})],
        })
        businesses = await repository.list_businesses()
        assert [business.id for business in businesses] == [10]

    @pytest.mark.asyncio
    async def test_non_numeric_doc_id(self):
        repository = _make_repository()
        _collections(repository, {
            "people": [
                _doc("1", {"first_name": "Alice"}),
                _doc("imported-abc", {"id": 7, "first_name": "Imported"}),
                _doc("imported-xyz", {"first_name": "No id"}),
            ],
        })

        people = await repository.list_people()

        assert [person.id for person in people] == [1, 7]

    @pytest.mark.asyncio
    async def test_list_entities_in_bucket_order(self):
        repository = _make_repository()
        _collections(repository, {
            "people": [_doc("1", {"first_name": "Alice"})],
            "businesses": [_doc("10", {"name": "Acme"})],
            "locations": [],
            "phones": [_doc("5", {"value": "555"})],
            "emails": [],
        })
        entities = await repository.list_entities()
        assert [entity.key.node_id for entity in entities] == ["person-1", "business-10", "phone-5"]

    @pytest.mark.asyncio
    async def test_get_entity_missing(self):
        repository = _make_repository()
        refs = _collections(repository, {"locations": []})
        refs["locations"].document.return_value.get.return_value = _doc("4", None, exists=False)
        assert await repository.get_entity(EntityKey(EntityType.LOCATION, 4)) is None
        refs["locations"].document.assert_called_with("4")

    @pytest.mark.asyncio
    async def test_list_relationships_queries_server_side(self):
        repository = _make_repository()
        refs = _collections(repository, {"relationships": []})
        source_query = refs["relationships"].where.return_value
        type_query = source_query.where.return_value
        type_query.stream.return_value = [
            _doc("a", {"source_type": "person", "source_id": 1, "target_type": "business",
                       "target_id": 10, "relationship_type": "owns"}),
            _doc("c", {"source_type": "person", "relationship_type": "owns"}),
        ]

        relationships = await repository.list_relationships(
            RelationshipQuery(source_type=EntityType.PERSON, source_id=1)
        )

        assert [relationship.id for relationship in relationships] == ["a"]
        refs["relationships"].where.assert_called_once_with("source_type", "==", "person")
        source_query.where.assert_called_once_with("source_id", "==", 1)
        refs["relationships"].stream.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_all_relationships_streams_collection(self):
        repository = _make_repository()
        refs = _collections(repository, {
            "relationships": [
                _doc("a", {"source_type": "person", "source_id": 1, "target_type": "business",
                           "target_id": 10, "relationship_type": "owns"}),
            ],
        })
        relationships = await repository.list_relationships()
        assert [relationship.id for relationship in relationships] == ["a"]
        refs["relationships"].where.assert_not_called()


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_relationship_assigns_doc_id(self):
        repository = _make_repository()
        refs = _collections(repository, {"relationships": []})
        new_ref = refs["relationships"].document.return_value
        new_ref.id = "auto123"

        created = await repository.create_relationship(Relationship(
            source_type="person", source_id=1, target_type="business", target_id=10,
            relationship_type="owns",
        ))

        assert created.id == "auto123"
        payload = new_ref.set.call_args[0][0]
        assert payload["relationship_type"] == "owns"
        assert payload["source_type"] == "person"
        assert "id" not in payload

    @pytest.mark.asyncio
    async def test_delete_missing_relationship(self):
        repository = _make_repository()
        refs = _collections(repository, {"relationships": []})
        refs["relationships"].document.return_value.get.return_value = _doc("x", None, exists=False)
        with pytest.raises(NotFoundError):
            await repository.delete_relationship("x")
        refs["relationships"].document.return_value.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_relationship(self):
        repository = _make_repository()
        refs = _collections(repository, {"relationships": []})
        ref = refs["relationships"].document.return_value
        ref.get.return_value = _doc("x", {"relationship_type": "owns"})
        await repository.delete_relationship("x")
        ref.delete.assert_called_once()

    @pytest.mark.asyncio
    async def test_save_person_connections_merges(self):
        repository = _make_repository()
        refs = _collections(repository, {"people": []})
        ref = refs["people"].document.return_value
        ref.get.return_value = _doc("1", {"first_name": "Alice", "connections": []})

        person = await repository.save_person_connections(1, [Connection(target_id=2, type="family")])

        assert isinstance(person, Person)
        assert person.connections[0].target_id == 2
        data, kwargs = ref.set.call_args[0][0], ref.set.call_args[1]
        assert data["connections"][0]["target_id"] == 2
        assert kwargs == {"merge": True}

    @pytest.mark.asyncio
    async def test_save_connections_unknown_person(self):
        repository = _make_repository()
        refs = _collections(repository, {"people": []})
        refs["people"].document.return_value.get.return_value = _doc("9", None, exists=False)
        with pytest.raises(NotFoundError):
            await repository.save_person_connections(9, [])
