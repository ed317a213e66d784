def _create_template(client, data, **extra):
    response = client.post("/admin/templates", json={**data, **extra})
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_settings_roundtrip_keeps_whitelisted_keys(client) -> None:
    before = client.get("/settings").json()
    assert "config_path" in before

    response = client.put("/settings", json={"default_page_limit": 50, "bogus": True})
    assert response.status_code == 200
    body = response.json()
    assert body["default_page_limit"] == 50
    assert "bogus" not in body


def test_variant_lifecycle(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    base = f"/admin/templates/{template['id']}/variants"

    first = client.post(
        base, json={"name": "Blue", "variant_type": "color", "is_default": True}
    ).json()["variant"]
    second = client.post(
        base,
        json={
            "name": "Compact",
            "variant_type": "layout",
            "sort_order": 1,
            "design_overrides": {"layout": {"columns": 1}},
        },
    ).json()["variant"]

    listing = client.get(base).json()
    assert listing["total"] == 2
    assert listing["default_variant"]["id"] == first["id"]
    assert listing["variants"][1]["computed_design_config"]["layout"] == {"columns": 1}

    response = client.put(f"{base}/{second['id']}", json={"is_default": True})
    assert response.json()["variant"]["is_default"] is True
    assert client.get(base).json()["default_variant"]["id"] == second["id"]

    assert client.delete(f"{base}/{second['id']}").status_code == 200
    assert client.get(f"{base}/{first['id']}").json()["is_default"] is True


def test_variant_bulk_update_and_sets(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    tid = template["id"]

    created = client.post(
        f"/admin/templates/{tid}/variant-sets", json={"set_type": "color_schemes"}
    ).json()
    assert created["set_type"] == "color_schemes"
    ids = [v["id"] for v in created["created_variants"]]
    assert created["created_variants"][0]["is_default"] is True

    response = client.post(
        f"/admin/templates/{tid}/variants/bulk-update",
        json={"variant_ids": ids[:2], "updates": {"is_default": True}},
    )
    assert response.json() == {"success": True, "updated_count": 2}
    listing = client.get(f"/admin/templates/{tid}/variants").json()
    assert [v["id"] for v in listing["variants"] if v["is_default"]] == [ids[1]]

    response = client.post(
        f"/admin/templates/{tid}/variants/bulk-update",
        json={"variant_ids": [ids[0], "ghost"], "updates": {"is_premium": True}},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_unknown_template_is_404_json(client) -> None:
    response = client.get("/admin/templates/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "detail": "Template not found"}


def test_invalid_structure_is_422(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    response = client.put(
        f"/admin/templates/{template['id']}",
        json={
            "template_structure": {
                "sections": [
                    {"id": "a", "name": "A", "type": "summary"},
                    {"id": "a", "name": "B", "type": "skills"},
                ]
            }
        },
    )
    assert response.status_code == 422
    assert response.json()["error"] == "validation_failure"


def test_preview_html(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    response = client.get(f"/admin/templates/{template['id']}/preview.html")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "No sample content available for this section" in response.text


def test_documents_require_user_header(client) -> None:
    assert client.get("/resumes").status_code == 401
    assert client.get("/documents/summary").status_code == 401


def test_documents_are_owner_scoped(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    owner = {"X-User-Id": "user-1"}
    response = client.post(
        "/resumes", json={"title": "Mine", "template_id": template["id"]}, headers=owner
    )
    assert response.status_code == 200, response.text
    doc = response.json()

    assert client.get(f"/resumes/{doc['id']}", headers=owner).json()["title"] == "Mine"
    other = client.get(f"/resumes/{doc['id']}", headers={"X-User-Id": "user-2"})
    assert other.status_code == 404

    updated = client.put(f"/resumes/{doc['id']}", json={"title": "Renamed"}, headers=owner)
    assert updated.json()["version"] == 2

    summary = client.get("/documents/summary", headers=owner).json()
    assert summary["resumes"] == 1
    assert summary["total_documents"] == 1


def test_cover_letter_status_endpoint(client) -> None:
    owner = {"X-User-Id": "user-1"}
    letter = client.post("/cover-letters", json={"title": "Hello"}, headers=owner).json()
    response = client.put(
        f"/cover-letters/{letter['id']}/status", json={"status": "sent"}, headers=owner
    )
    assert response.status_code == 200
    assert response.json()["date_submitted"] is not None

    bad = client.put(
        f"/cover-letters/{letter['id']}/status", json={"status": "lost"}, headers=owner
    )
    assert bad.status_code == 422


def test_public_catalog_lists_published_templates(client, sample_template_data) -> None:
    visible = _create_template(client, sample_template_data)
    _create_template(client, sample_template_data, name="Hidden", is_draft=True)
    catalog = client.get("/templates").json()["templates"]
    assert [t["id"] for t in catalog] == [visible["id"]]


def test_personal_info_fields_are_validated(client) -> None:
    owner = {"X-User-Id": "user-1"}
    bad = client.post(
        "/resumes",
        json={"title": "Mine", "personal_info": {"email": "not-an-email", "linkedIn": "::nope"}},
        headers=owner,
    )
    assert bad.status_code == 422
    assert bad.json()["error"] == "validation_failure"
    assert "personal_info" in bad.json()["detail"]

    letter = client.post(
        "/cover-letters",
        json={"title": "Letter", "personal_info": {"github": "github"}},
        headers=owner,
    )
    assert letter.status_code == 422

    ok = client.post(
        "/resumes",
        json={
            "title": "Mine",
            "personal_info": {
                "firstName": "Ada",
                "email": "ada@example.com",
                "linkedIn": "https://www.linkedin.com/in/ada",
                "pronouns": "she/her",
            },
        },
        headers=owner,
    )
    assert ok.status_code == 200, ok.text
    assert ok.json()["personal_info"] == {
        "first_name": "Ada",
        "email": "ada@example.com",
        "linked_in": "https://www.linkedin.com/in/ada",
        "pronouns": "she/her",
    }

    patched = client.put(
        f"/resumes/{ok.json()['id']}", json={"personal_info": {"email": "nope"}}, headers=owner
    )
    assert patched.status_code == 422


def test_image_urls_are_validated(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    base = f"/admin/templates/{template['id']}/variants"
    bad_variant = client.post(
        base,
        json={"name": "Blue", "variant_type": "color", "preview_image_url": "javascript:alert(1)"},
    )
    assert bad_variant.status_code == 422

    assert client.post(
        "/admin/collections", json={"name": "Picks", "cover_image_url": "not a url"}
    ).status_code == 422
    collection = client.post(
        "/admin/collections",
        json={"name": "Picks", "cover_image_url": "https://cdn.example.com/cover.png"},
    )
    assert collection.status_code == 200, collection.text
    assert collection.json()["cover_image_url"] == "https://cdn.example.com/cover.png"


def test_null_on_required_field_is_rejected(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    url = f"/admin/templates/{template['id']}"

    response = client.put(url, json={"name": None})
    assert response.status_code == 422
    assert response.json()["error"] == "validation_failure"
    assert "name" in response.json()["detail"]
    assert client.get(url).json()["name"] == "Modern Professional"

    # nullable columns can still be cleared
    cleared = client.put(url, json={"description": None})
    assert cleared.status_code == 200
    assert cleared.json()["description"] is None

    variant = client.post(
        f"{url}/variants", json={"name": "Blue", "variant_type": "color"}
    ).json()["variant"]
    response = client.put(f"{url}/variants/{variant['id']}", json={"name": None})
    assert response.status_code == 422
    assert client.get(f"{url}/variants/{variant['id']}").json()["name"] == "Blue"

    bulk = client.post(
        "/admin/templates/bulk/update",
        json={"template_ids": [template["id"]], "updates": {"is_active": None}},
    )
    assert bulk.status_code == 422


def test_unlink_unknown_section_is_422(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    response = client.delete(
        f"/admin/templates/{template['id']}/sample-content/not-a-section/some-content"
    )
    assert response.status_code == 422
    assert response.json()["error"] == "validation_failure"


def test_preview_html_ignores_unsafe_design_values(client, sample_template_data) -> None:
    design = {
        "colors": {"primary": "red; } body { display: none", "text": "#0f0"},
        "typography": {"fontFamily": "x; } @import url(evil.css"},
    }
    template = _create_template(client, sample_template_data, design_config=design)
    html = client.get(f"/admin/templates/{template['id']}/preview.html").text
    assert "display: none" not in html
    assert "@import" not in html
    assert "h2 { color: #111827; }" in html
    assert "color: #0f0;" in html
    assert "font-family: Inter, sans-serif;" in html


def _seed_sample_content(client, **extra):
    response = client.post("/admin/sample-content", json={"content_type": "summary", **extra})
    assert response.status_code == 200, response.text
    return response.json()


def test_sample_content_preview_and_targeted_initialization(client, sample_template_data) -> None:
    owner = {"X-User-Id": "user-1"}
    template = _create_template(client, sample_template_data)
    _seed_sample_content(
        client,
        title="Tech",
        content={"text": "Ships software"},
        target_industry=["technology"],
        experience_level="mid",
    )
    _seed_sample_content(
        client,
        title="Bank",
        content={"text": "Balances books"},
        target_industry=["finance"],
        experience_level="mid",
    )
    _seed_sample_content(
        client,
        title="Bank lead",
        content={"text": "Runs the desk"},
        target_industry=["finance"],
        experience_level="lead",
    )

    url = f"/templates/{template['id']}/sample-content-preview"
    assert client.get(url).status_code == 401
    preview = client.get(url, params={"target_industry": "finance"}, headers=owner).json()
    assert preview["template"]["id"] == template["id"]
    assert preview["targeting"]["experience_level"] == "mid"
    summary = preview["sections"][0]
    assert summary["section"]["id"] == "s1"
    assert summary["source"] == "generic"
    assert summary["available_samples"] == 1
    assert [s["title"] for s in summary["samples"]] == ["Bank"]
    assert preview["sections"][2]["source"] is None

    untargeted = client.get(url, headers=owner).json()["sections"][0]
    assert untargeted["available_samples"] == 3
    assert len(untargeted["samples"]) == 2

    doc = client.post(
        f"/resumes/from-template/{template['id']}",
        params={"target_industry": "finance", "title": "Banking"},
        headers=owner,
    ).json()
    assert doc["content"]["summary"] == {"text": "Balances books"}
    assert doc["target_industry"] == "finance"
    assert doc["target_specialization"] is None


def test_customizations_are_owner_scoped_and_applied(client, sample_template_data) -> None:
    owner = {"X-User-Id": "user-1"}
    template = _create_template(client, sample_template_data)

    created = client.post(
        "/template-customizations",
        json={
            "template_id": template["id"],
            "custom_name": "Mine",
            "design_overrides": {"colors": {"primary": "#00ff00"}},
        },
        headers=owner,
    )
    assert created.status_code == 200, created.text
    customization = created.json()
    assert customization["base_template_version"] == "1.0.0"
    cid = customization["id"]

    listing = client.get("/template-customizations", headers=owner).json()
    assert [c["id"] for c in listing["customizations"]] == [cid]
    other = {"X-User-Id": "user-2"}
    assert client.get("/template-customizations", headers=other).json()["total"] == 0
    assert client.get(f"/template-customizations/{cid}", headers=other).status_code == 404

    renamed = client.put(
        f"/template-customizations/{cid}", json={"custom_name": "Green"}, headers=owner
    )
    assert renamed.json()["custom_name"] == "Green"
    assert client.put(
        f"/template-customizations/{cid}", json={"design_overrides": None}, headers=owner
    ).status_code == 422

    doc = client.post(
        f"/resumes/from-template/{template['id']}",
        params={"customization_id": cid},
        headers=owner,
    ).json()
    assert doc["design_config"]["colors"] == {"primary": "#00ff00", "text": "#111111"}
    used = client.get(f"/template-customizations/{cid}", headers=owner).json()
    assert used["times_used"] == 1
    assert used["last_used_at"] is not None

    foreign = client.post(
        f"/resumes/from-template/{template['id']}",
        params={"customization_id": cid},
        headers=other,
    )
    assert foreign.status_code == 404

    assert client.delete(f"/template-customizations/{cid}", headers=other).status_code == 404
    assert client.delete(f"/template-customizations/{cid}", headers=owner).json()["success"]
    assert client.get("/template-customizations", headers=owner).json()["total"] == 0


def test_template_rating_updates_aggregate(client, sample_template_data) -> None:
    template = _create_template(client, sample_template_data)
    url = f"/templates/{template['id']}/rating"

    client.post(url, json={"rating": 5}, headers={"X-User-Id": "user-1"})
    result = client.post(
        url, json={"rating": 2, "feedback": "too plain"}, headers={"X-User-Id": "user-2"}
    ).json()
    assert result["avg_rating"] == 3.5
    assert result["total_ratings"] == 2

    assert client.post(url, json={"rating": 6}, headers={"X-User-Id": "user-1"}).status_code == 422
    fetched = client.get(f"/admin/templates/{template['id']}").json()
    assert (fetched["avg_rating"], fetched["total_ratings"]) == (3.5, 2)
