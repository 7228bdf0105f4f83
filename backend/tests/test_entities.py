"""Entity models, composite keys and relationship vocabularies."""
from __future__ import annotations

import pytest
from pydantic import TypeAdapter

from casegraph.models.entity import (
    Business,
    Connection,
    EmailAddress,
    Entity,
    EntityKey,
    EntityType,
    Location,
    Person,
    PhoneNumber,
    Relationship,
    RelationshipQuery,
    entity_label,
)
from casegraph.models.graph import Workflow
from casegraph.models.relationship_schema import (
    allowed_relationship_types,
    relationship_label,
    relationship_type_options,
)


class TestEntityKey:
    def test_node_id_encoding(self):
        assert EntityKey(EntityType.PERSON, 42).node_id == "person-42"
        assert str(EntityKey("business", 7)) == "business-7"

    def test_parse_round_trip(self):
        key = EntityKey.parse("location-3")
        assert key == EntityKey(EntityType.LOCATION, 3)
        assert key.entity_type is EntityType.LOCATION

    def test_same_raw_id_different_types_do_not_collide(self):
        keys = {EntityKey(EntityType.PERSON, 1), EntityKey(EntityType.BUSINESS, 1)}
        assert len(keys) == 2

    def test_hashable_and_equal(self):
        assert EntityKey("phone", 5) == EntityKey(EntityType.PHONE, 5)
        assert hash(EntityKey("phone", 5)) == hash(EntityKey(EntityType.PHONE, 5))

    @pytest.mark.parametrize("node_id", ["person", "vehicle-1", "person-abc", "-1", ""])
    def test_parse_rejects_malformed(self, node_id):
        with pytest.raises(ValueError):
            EntityKey.parse(node_id)

    def test_rejects_non_int_id(self):
        with pytest.raises(ValueError):
            EntityKey(EntityType.PERSON, "42")
        with pytest.raises(ValueError):
            EntityKey(EntityType.PERSON, True)


class TestEntityModels:
    def test_discriminated_union(self):
        adapter = TypeAdapter(Entity)
        entity = adapter.validate_python({"entity_type": "business", "id": 10, "name": "Acme"})
        assert isinstance(entity, Business)
        assert entity.key == EntityKey(EntityType.BUSINESS, 10)

    def test_connection_accepts_person_id_alias(self):
        connection = Connection.model_validate({"person_id": 2, "type": "friend"})
        assert connection.target_id == 2

    def test_connection_without_target(self):
        assert Connection.model_validate({"type": "friend"}).target_id is None

    def test_relationship_defaults(self):
        relationship = Relationship(
            source_type="person", source_id=1, target_type="business", target_id=2,
            relationship_type="owns",
        )
        assert relationship.confidence_score == 75
        assert relationship.source_key.node_id == "person-1"
        assert relationship.target_key.node_id == "business-2"

    def test_relationship_confidence_bounds(self):
        with pytest.raises(ValueError):
            Relationship(
                source_type="person", source_id=1, target_type="person", target_id=2,
                relationship_type="friend", confidence_score=101,
            )

    def test_query_matches(self):
        relationship = Relationship(
            source_type="person", source_id=1, target_type="business", target_id=2,
            relationship_type="owns",
        )
        query = RelationshipQuery.between(relationship.source_key, relationship.target_key)
        assert query.matches(relationship)
        assert not query.model_copy(update={"relationship_type": "works_at"}).matches(relationship)
        assert RelationshipQuery().matches(relationship)


class TestEntityLabel:
    def test_person_name_trimmed(self):
        assert entity_label(Person(id=1, first_name="Alice", last_name=None)) == "Alice"
        assert entity_label(Person(id=1, first_name="Alice", last_name="Smith")) == "Alice Smith"
        assert entity_label(Person(id=1)) == "Unknown"

    def test_business(self):
        assert entity_label(Business(id=1, name="Acme")) == "Acme"

    def test_location_fallbacks(self):
        assert entity_label(Location(id=1, name="HQ", address="1 Main St")) == "HQ"
        assert entity_label(Location(id=1, address="1 Main St")) == "1 Main St"
        assert entity_label(Location(id=1)) == "Unknown Location"

    def test_phone_and_email(self):
        assert entity_label(PhoneNumber(id=1, value="+1 555 0100")) == "+1 555 0100"
        assert entity_label(PhoneNumber(id=1)) == "Unknown Phone"
        assert entity_label(EmailAddress(id=1)) == "Unknown Email"


class TestVocabularies:
    def test_ordered_pairs_have_distinct_vocabularies(self):
        assert allowed_relationship_types(EntityType.PERSON, EntityType.BUSINESS) == (
            "owns", "works_at", "director_of", "customer_of",
        )
        assert allowed_relationship_types(EntityType.BUSINESS, EntityType.PERSON) == (
            "employs", "owned_by", "has_director", "has_customer",
        )

    def test_phone_and_email(self):
        assert allowed_relationship_types(EntityType.PERSON, EntityType.PHONE) == ("uses_phone",)
        assert allowed_relationship_types(EntityType.BUSINESS, EntityType.EMAIL) == ("uses_email",)

    def test_unlisted_pair_falls_back_to_other(self):
        assert allowed_relationship_types(EntityType.LOCATION, EntityType.PHONE) == ("other",)

    def test_workflows_stay_separate(self):
        basic = allowed_relationship_types(EntityType.PERSON, EntityType.PERSON, Workflow.BASIC)
        enhanced = allowed_relationship_types(EntityType.PERSON, EntityType.PERSON, Workflow.ENHANCED)
        assert "suspect" in basic
        assert "suspect" not in enhanced
        assert allowed_relationship_types(EntityType.PERSON, EntityType.BUSINESS, Workflow.BASIC) == ()

    def test_options_carry_labels(self):
        options = relationship_type_options(EntityType.PERSON, EntityType.LOCATION)
        assert {"value": "lives_at", "label": "Lives At"} in options
        assert relationship_label("employer", Workflow.BASIC) == "Employer/Employee"
        assert relationship_label("transfers_money") == "Transfers Money"
