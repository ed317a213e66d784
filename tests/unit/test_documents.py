import pytest

from template_studio.core.sample_content import InMemorySampleContent
from template_studio.errors import NotFoundError, ValidationFailure
from template_studio.services import customizations as customization_service
from template_studio.services import documents as document_service
from template_studio.services import templates as template_service
from template_studio.services import usage as usage_service
from template_studio.services import variants as variant_service

resumes = document_service.service_for("resume")
cover_letters = document_service.service_for("cover_letter")


def _template(store, data, **extra):
    return template_service.create_template(store, {**data, **extra})


def test_create_links_template_and_counts_usage(store, sample_template_data) -> None:
    template = _template(store, sample_template_data)
    doc = resumes.create(store, "u1", {"title": "Mine", "template_id": template["id"]})
    assert doc["user_id"] == "u1"
    assert doc["is_from_template"] is True
    assert doc["version"] == 1
    assert template_service.get_template(store, template["id"])["usage_count"] == 1


def test_create_rejects_bad_template_refs(store, sample_template_data) -> None:
    template = _template(store, sample_template_data)
    with pytest.raises(ValidationFailure):
        resumes.create(store, "u1", {"title": "x", "template_variant_id": "v1"})
    with pytest.raises(NotFoundError):
        resumes.create(store, "u1", {"title": "x", "template_id": "missing"})
    with pytest.raises(NotFoundError):
        resumes.create(
            store, "u1", {"title": "x", "template_id": template["id"], "template_variant_id": "nope"}
        )


def test_other_owner_sees_not_found(store) -> None:
    doc = resumes.create(store, "u1", {"title": "Private"})
    with pytest.raises(NotFoundError):
        resumes.get(store, "u2", doc["id"])
    with pytest.raises(NotFoundError):
        resumes.update(store, "u2", doc["id"], {"title": "Stolen"})
    with pytest.raises(NotFoundError):
        resumes.delete(store, "u2", doc["id"])
    assert resumes.get(store, "u1", doc["id"])["title"] == "Private"


def test_update_bumps_version_and_protects_owner(store) -> None:
    doc = resumes.create(store, "u1", {"title": "Draft"})
    updated = resumes.update(
        store, "u1", doc["id"], {"title": "Final", "user_id": "u2", "version": 99}
    )
    assert updated["title"] == "Final"
    assert updated["user_id"] == "u1"
    assert updated["version"] == 2


def test_single_default_per_owner(store) -> None:
    first = resumes.create(store, "u1", {"title": "A", "is_default": True})
    second = resumes.create(store, "u1", {"title": "B", "is_default": True})
    other = resumes.create(store, "u2", {"title": "C", "is_default": True})

    defaults = resumes.list(store, "u1", {"is_default": True})
    assert [d["id"] for d in defaults] == [second["id"]]

    resumes.set_default(store, "u1", first["id"])
    defaults = resumes.list(store, "u1", {"is_default": True})
    assert [d["id"] for d in defaults] == [first["id"]]
    assert resumes.get(store, "u2", other["id"])["is_default"] is True


def test_duplicate_document(store) -> None:
    doc = resumes.create(
        store,
        "u1",
        {
            "title": "Base",
            "is_default": True,
            "is_public": True,
            "personal_info": {"first_name": "Ada"},
            "design_config": {"colors": {"primary": "#000"}},
        },
    )
    resumes.update(store, "u1", doc["id"], {"title": "Base"})

    copy_ = resumes.duplicate(store, "u1", doc["id"], preserve_design_config=False)
    assert copy_["title"] == "Base (Copy)"
    assert (copy_["is_default"], copy_["is_public"], copy_["version"]) == (False, False, 1)
    assert copy_["personal_info"] == {"first_name": "Ada"}
    assert copy_["design_config"] == {}


def test_cover_letter_status_sent_stamps_submission(store) -> None:
    letter = cover_letters.create(store, "u1", {"title": "Dear team", "target_company": "Acme"})
    assert letter["application_status"] == "draft"

    ready = cover_letters.update_status(store, "u1", letter["id"], "ready")
    assert ready["date_submitted"] is None

    sent = cover_letters.update_status(store, "u1", letter["id"], "sent", notes="via portal")
    assert sent["application_status"] == "sent"
    assert sent["status_notes"] == "via portal"
    assert sent["date_submitted"] is not None

    listed = cover_letters.list(store, "u1", {"application_status": "sent"})
    assert [c["id"] for c in listed] == [letter["id"]]


def test_bulk_delete_and_summary(store) -> None:
    a = resumes.create(store, "u1", {"title": "A"})
    b = resumes.create(store, "u1", {"title": "B"})
    foreign = resumes.create(store, "u2", {"title": "C"})
    document_service.service_for("cv").create(store, "u1", {"title": "CV"})
    cover_letters.create(store, "u1", {"title": "Letter"})

    result = document_service.bulk_delete(store, "u1", "resume", [a["id"], foreign["id"], b["id"]])
    assert result["success_count"] == 2
    assert result["deleted_ids"] == [a["id"], b["id"]]
    assert [e["id"] for e in result["errors"]] == [foreign["id"]]

    assert document_service.summary(store, "u1") == {
        "total_documents": 2,
        "resumes": 0,
        "cvs": 1,
        "cover_letters": 1,
    }


def test_unknown_document_type() -> None:
    with pytest.raises(ValidationFailure):
        document_service.service_for("poem")


def test_initialize_from_template(store, sample_template_data) -> None:
    template = _template(store, sample_template_data)
    variant = variant_service.create_variant(
        store,
        template["id"],
        {
            "name": "Red",
            "variant_type": "color",
            "is_default": True,
            "design_overrides": {"colors": {"primary": "#ff0000"}},
        },
    )
    source = InMemorySampleContent(
        [
            {"id": "c1", "content_type": "summary", "content": {"text": "Seasoned engineer"}},
            {"id": "c2", "content_type": "experience", "content": [{"company": "Acme"}]},
        ]
    )

    doc = resumes.initialize_from_template(
        store, "u1", template["id"], title="From template", source=source
    )
    assert doc["title"] == "From template"
    assert doc["template_variant_id"] == variant["id"]
    assert doc["is_from_template"] is True
    assert doc["experience_level"] == "mid"
    assert doc["content"] == {
        "summary": {"text": "Seasoned engineer"},
        "experience": [{"company": "Acme"}],
    }
    assert doc["personal_info"] == document_service.PLACEHOLDER_PERSONAL_INFO
    assert doc["design_config"]["colors"]["primary"] == "#ff0000"


def test_initialize_from_template_checks_kind_and_access(store, sample_template_data) -> None:
    template = _template(store, sample_template_data)
    with pytest.raises(ValidationFailure):
        document_service.service_for("cv").initialize_from_template(
            store, "u1", template["id"], source=InMemorySampleContent([])
        )

    private = _template(store, sample_template_data, is_public=False)
    with pytest.raises(NotFoundError):
        resumes.initialize_from_template(store, "u1", private["id"])


def test_public_catalog_hides_drafts_and_private(store, sample_template_data) -> None:
    visible = _template(store, sample_template_data, name="Visible")
    featured = _template(store, sample_template_data, name="Zeta", is_featured=True)
    _template(store, sample_template_data, name="Draft", is_draft=True)
    _template(store, sample_template_data, name="Private", is_public=False)
    retired = _template(store, sample_template_data, name="Retired")
    template_service.delete_template(store, retired["id"])

    catalog = document_service.list_public_templates(store)
    assert [t["id"] for t in catalog] == [featured["id"], visible["id"]]
    assert document_service.list_public_templates(store, {"industry": "finance"}) == []
    assert document_service.list_public_templates(store, {"document_type": "cv"}) == []

    variants = document_service.public_template_variants(store, visible["id"])
    assert variants["total"] == 0
    assert variants["default_variant"] is None
    with pytest.raises(NotFoundError):
        document_service.public_template_variants(store, retired["id"])


def _targeted_source():
    return InMemorySampleContent(
        [
            {
                "id": "tech",
                "content_type": "summary",
                "content": {"text": "tech"},
                "target_industry": ["technology"],
                "target_specialization": ["software_engineering"],
                "experience_level": "mid",
            },
            {
                "id": "health",
                "content_type": "summary",
                "content": {"text": "health"},
                "target_industry": ["healthcare"],
                "experience_level": "mid",
            },
            {
                "id": "health-senior",
                "content_type": "summary",
                "content": {"text": "health senior"},
                "target_industry": ["healthcare"],
                "experience_level": "senior",
            },
            {"id": "k1", "content_type": "custom", "content": {"text": "pinned"}},
        ]
    )


def test_initialize_with_caller_facets_and_customization(store, sample_template_data) -> None:
    template = _template(store, sample_template_data)
    customization = customization_service.save_customization(
        store,
        "u1",
        {"template_id": template["id"], "design_overrides": {"layout": {"columns": 1}}},
    )

    doc = resumes.initialize_from_template(
        store,
        "u1",
        template["id"],
        target_industry="healthcare",
        customization_id=customization["id"],
        source=_targeted_source(),
    )
    assert doc["content"]["summary"] == {"text": "health"}
    assert doc["target_industry"] == "healthcare"
    assert doc["design_config"]["layout"] == {"columns": 1}
    assert doc["design_config"]["colors"]["primary"] == "#000000"

    usage = store.query("template_usage").all()
    assert [(u.action_type, u.document_id, u.customization_id) for u in usage] == [
        ("select", doc["id"], customization["id"])
    ]
    assert customization_service.get_customization(store, "u1", customization["id"])[
        "times_used"
    ] == 1

    # without caller facets the template's own targeting applies
    templated = resumes.initialize_from_template(
        store, "u1", template["id"], source=_targeted_source(), use_targeting=True
    )
    assert templated["content"]["summary"] == {"text": "tech"}
    assert templated["target_industry"] is None


def test_initialize_rejects_foreign_or_mismatched_customization(
    store, sample_template_data
) -> None:
    template = _template(store, sample_template_data)
    other = _template(store, sample_template_data, name="Other")
    customization = customization_service.save_customization(
        store, "u1", {"template_id": other["id"]}
    )
    source = InMemorySampleContent([])
    with pytest.raises(ValidationFailure):
        resumes.initialize_from_template(
            store, "u1", template["id"], customization_id=customization["id"], source=source
        )
    with pytest.raises(NotFoundError):
        resumes.initialize_from_template(
            store, "u2", other["id"], customization_id=customization["id"], source=source
        )


def test_preview_sample_content_reports_pinned_and_pool(store, sample_template_data) -> None:
    template = _template(
        store, sample_template_data, specific_sample_content_map={"s3": ["k1", "gone"]}
    )
    preview = document_service.preview_sample_content(
        store, template["id"], target_industry="healthcare", source=_targeted_source()
    )
    assert preview["targeting"] == {
        "industry": "healthcare",
        "specialization": None,
        "experience_level": "mid",
    }
    by_section = {entry["section"]["id"]: entry for entry in preview["sections"]}
    assert (by_section["s1"]["source"], by_section["s1"]["available_samples"]) == ("generic", 1)
    assert by_section["s1"]["samples"][0]["id"] == "health"
    assert by_section["s2"]["source"] is None
    assert by_section["s2"]["samples"] == []
    assert by_section["s3"]["source"] == "specific"
    assert [s["id"] for s in by_section["s3"]["samples"]] == ["k1"]

    unfiltered = document_service.preview_sample_content(
        store, template["id"], source=_targeted_source()
    )
    s1 = unfiltered["sections"][0]
    assert (s1["available_samples"], len(s1["samples"])) == (3, 2)
    assert unfiltered["targeting"] is None


def test_customization_crud_is_owner_scoped(store, sample_template_data) -> None:
    template = _template(store, sample_template_data)
    first = customization_service.save_customization(
        store, "u1", {"template_id": template["id"], "custom_name": "A"}
    )
    customization_service.save_customization(
        store, "u2", {"template_id": template["id"], "custom_name": "B"}
    )

    listed = customization_service.list_customizations(store, "u1", template["id"])
    assert [c["custom_name"] for c in listed["customizations"]] == ["A"]

    updated = customization_service.save_customization(
        store, "u1", {"custom_name": "A2", "user_id": "u2"}, customization_id=first["id"]
    )
    assert (updated["custom_name"], updated["user_id"]) == ("A2", "u1")
    with pytest.raises(NotFoundError):
        customization_service.save_customization(
            store, "u2", {"custom_name": "stolen"}, customization_id=first["id"]
        )
    with pytest.raises(NotFoundError):
        customization_service.delete_customization(store, "u2", first["id"])

    private = _template(store, sample_template_data, is_public=False)
    with pytest.raises(NotFoundError):
        customization_service.save_customization(store, "u1", {"template_id": private["id"]})

    template_service.delete_template(store, template["id"], hard_delete=True)
    assert store.query("customization").count() == 0


def test_rating_counts_each_user_once(store, sample_template_data) -> None:
    template = _template(store, sample_template_data)
    usage_service.rate_template(store, "u1", template["id"], 1)
    usage_service.rate_template(store, "u2", template["id"], 4, feedback="clean")
    result = usage_service.rate_template(store, "u1", template["id"], 5)
    assert (result["avg_rating"], result["total_ratings"]) == (4.5, 2)

    fetched = template_service.get_template(store, template["id"])
    assert (fetched["avg_rating"], fetched["total_ratings"]) == (4.5, 2)
    assert store.query("template_usage").count() == 3

    with pytest.raises(ValueError):
        usage_service.record_usage(store, "u1", store.get_by_id("template", template["id"]), "poke")
