"""
tests/test_scaffolding.py
Unit tests for modelschema.scaffolding.

Tests cover:
- controllers: API / web controllers, routes, middleware, soft-delete extras
- policies: ability methods, ownership hints, gates
- observers: event selection and per-event switches
- services: CRUD methods, caching and repository variants
- actions: CRUD, bulk, status and custom actions
- rules: unique, exists, business and custom rule classes
"""

from __future__ import annotations

import re
from typing import Any, Dict, Set

from modelschema.models import Schema
from modelschema.scaffolding import (
    ActionGenerator,
    ControllerGenerator,
    ObserverGenerator,
    PolicyGenerator,
    RuleGenerator,
    ServiceGenerator,
)
from modelschema.validation import AutoValidationService

_THIS_CALL = re.compile(r"\$this->(\w+)\(")


class TestControllerGenerator:
    """Tests for the controllers fragment."""

    def test_structure(self, validation: AutoValidationService, post_schema: Schema) -> None:
        body = ControllerGenerator(validation).generate(post_schema).body
        assert list(body) == [
            "api_controller", "web_controller", "resource_routes", "middleware", "policies",
        ]
        api = body["api_controller"]
        assert api["name"] == "PostApiController"
        assert api["requests"] == {"store": "StorePostRequest", "update": "UpdatePostRequest"}
        assert {"restore", "forceDestroy"} <= set(api["methods"])
        assert api["methods"]["store"]["response_codes"] == [201, 422]
        assert api["relationships"]["author"]["eager_load"] is True
        assert api["relationships"]["comments"]["load_count"] is True

    def test_validation_and_filters(self, validation: AutoValidationService, post_schema: Schema) -> None:
        api = ControllerGenerator(validation).generate(post_schema).body["api_controller"]
        assert api["validation"]["store"]["title"] == ["required", "string", "max:200"]
        assert api["validation"]["update"]["title"] == ["sometimes", "string", "max:200"]
        assert api["filters"]["title"] == {"type": "search", "operator": "like"}
        assert api["filters"]["status"] == {"type": "in", "operator": "in"}
        assert api["filters"]["published_at"]["type"] == "date_range"

    def test_routes(self, validation: AutoValidationService, post_schema: Schema) -> None:
        routes = ControllerGenerator(validation).generate(post_schema).body["resource_routes"]
        assert routes["api_routes"]["prefix"] == "api"
        assert routes["api_routes"]["parameters"] == {"posts": "post"}
        assert set(routes["additional_routes"]) == {"trashed", "restore"}
        assert routes["additional_routes"]["restore"]["uri"] == "posts/{id}/restore"

    def test_api_only(self, validation: AutoValidationService, user_schema: Schema) -> None:
        body = ControllerGenerator(validation).generate(
            user_schema, {"include_web": False, "authorization_enabled": False}
        ).body
        assert "web_controller" not in body
        assert "web_routes" not in body["resource_routes"]
        assert body["resource_routes"]["additional_routes"] == {}
        assert body["middleware"]["authorization"] == {}
        assert body["api_controller"]["traits"] == []

    def test_web_controller(self, validation: AutoValidationService, post_schema: Schema) -> None:
        web = ControllerGenerator(validation).generate(post_schema).body["web_controller"]
        assert web["name"] == "PostController"
        assert web["methods"]["edit"]["view"] == "posts.edit"
        assert web["methods"]["store"]["redirect_to"] == "posts.show"
        assert web["flash_messages"]["created"] == "Post created successfully."


class TestPolicyGenerator:
    """Tests for the policies fragment."""

    def test_methods(self, validation: AutoValidationService, post_schema: Schema) -> None:
        body = PolicyGenerator(validation).generate(post_schema).body
        assert list(body) == ["PostPolicy"]
        policy: Dict[str, Any] = body["PostPolicy"]
        assert list(policy["methods"]) == [
            "viewAny", "view", "create", "update", "delete", "restore", "forceDelete", "publish",
        ]
        assert policy["authorization_logic"]["supports_publishing"] is True
        assert policy["middleware"] == ["auth", "verified"]
        assert "post.viewAny" in policy["gates"]

    def test_ownership(self, validation: AutoValidationService) -> None:
        schema = Schema.from_dict(
            {"model": "Note", "fields": {"body": "text", "user_id": "foreignId"}}
        )
        policy = PolicyGenerator(validation).generate(schema).body["NotePolicy"]
        assert policy["authorization_logic"]["ownership_field"] == "user_id"
        assert policy["methods"]["update"]["logic"] == [
            "return $user->hasPermission('notes.update') || $user->id === $note->user_id;"
        ]
        assert "restore" not in policy["methods"]
        assert "publish" not in policy["methods"]

    def test_without_gates(self, validation: AutoValidationService, user_schema: Schema) -> None:
        policy = PolicyGenerator(validation).generate(user_schema, {"include_gates": False}).body
        assert policy["UserPolicy"]["gates"] == {}


class TestObserverGenerator:
    """Tests for the observers fragment."""

    def test_soft_delete_events(self, validation: AutoValidationService, post_schema: Schema) -> None:
        observer = ObserverGenerator(validation).generate(post_schema).body["PostObserver"]
        assert observer["events"][-3:] == ["restoring", "restored", "forceDeleted"]
        assert observer["methods"]["creating"]["return_type"] == "bool|void"
        assert observer["methods"]["created"]["return_type"] == "void"
        assert observer["methods"]["forceDeleted"]["description"] == 'Handle the Post "force deleted" event.'

    def test_event_switches(self, validation: AutoValidationService, user_schema: Schema) -> None:
        observer = ObserverGenerator(validation).generate(
            user_schema, {"observe": {"retrieved": False}}
        ).body["UserObserver"]
        assert "retrieved" not in observer["events"]
        assert "retrieved" not in observer["methods"]
        assert "restoring" not in observer["events"]
        assert observer["events"][0] == "creating"


class TestServiceGenerator:
    """Tests for the services fragment."""

    @staticmethod
    def _called_helpers(service: Dict[str, Any]) -> Set[str]:
        return {
            name
            for method in service["methods"].values()
            for line in method["logic"]
            for name in _THIS_CALL.findall(line)
        }

    def test_default_service(self, validation: AutoValidationService, post_schema: Schema) -> None:
        service = ServiceGenerator(validation).generate(post_schema).body["PostService"]
        assert list(service["methods"]) == [
            "create", "update", "delete", "findById", "getAll", "paginate",
            "validateData", "applyFilters", "clearCache",
        ]
        assert service["properties"]["cacheTtl"]["value"] == 3600
        create = service["methods"]["create"]["logic"]
        assert create[0] == "$this->validateData($data, 'create');"
        assert "$this->clearCache();" in create
        assert "$this->validateData($data, 'update', $post);" in service["methods"]["update"]["logic"]
        assert "$this->clearCache($post->id);" in service["methods"]["delete"]["logic"]
        assert service["methods"]["clearCache"]["visibility"] == "protected"
        assert service["dependencies"] == []

    def test_called_helpers_are_declared(self, validation: AutoValidationService, post_schema: Schema) -> None:
        gen = ServiceGenerator(validation)
        for options in ({}, {"enable_caching": False}, {"repository_class": "App\\Repositories\\PostRepository"}):
            service = gen.generate(post_schema, options).body["PostService"]
            missing = self._called_helpers(service) - set(service["methods"])
            assert not missing, f"{options}: undeclared helpers {sorted(missing)}"

    def test_caching_off(self, validation: AutoValidationService, user_schema: Schema) -> None:
        service = ServiceGenerator(validation).generate(
            user_schema, {"enable_caching": False}
        ).body["UserService"]
        assert "clearCache" not in service["methods"]
        assert "clearCache" not in self._called_helpers(service)
        assert "cachePrefix" not in service["properties"]
        assert service["methods"]["findById"]["logic"] == ["return User::find($id);"]

    def test_repository_without_cache(self, validation: AutoValidationService, post_schema: Schema) -> None:
        service = ServiceGenerator(validation).generate(
            post_schema,
            {"repository_class": "App\\Repositories\\PostRepository", "enable_caching": False},
        ).body["PostService"]
        assert "postRepository" in service["properties"]
        assert "cacheTtl" not in service["properties"]
        assert service["methods"]["findById"]["logic"] == ["return $this->postRepository->find($id);"]
        assert service["dependencies"][0]["variable"] == "postRepository"


class TestActionGenerator:
    """Tests for the actions fragment."""

    def test_actions(self, validation: AutoValidationService, post_schema: Schema) -> None:
        actions = ActionGenerator(validation).generate(post_schema).body
        assert list(actions) == [
            "CreatePostAction",
            "UpdatePostAction",
            "DeletePostAction",
            "PostBulkUpdateAction",
            "PostExportAction",
            "PostImportAction",
            "ActivatePostAction",
            "DeactivatePostAction",
        ]
        assert actions["PostBulkUpdateAction"]["implements"] == ["ShouldQueue"]
        assert actions["PostBulkUpdateAction"]["properties"]["queue"]["value"] == "default"
        assert actions["CreatePostAction"]["implements"] == []
        execute = actions["UpdatePostAction"]["methods"]["execute"]
        assert execute["parameters"] == ["Post $post", "array $data"]
        assert execute["return_type"] == "Post"
        assert actions["ActivatePostAction"]["methods"]["execute"]["logic"] == [
            "return $post->update(['status' => 'active']);"
        ]

    def test_boolean_status_and_custom(self, validation: AutoValidationService, user_schema: Schema) -> None:
        actions = ActionGenerator(validation).generate(
            user_schema,
            {"include_bulk_actions": False, "custom_actions": [{"name": "SuspendUserAction"}]},
        ).body
        assert "UserBulkUpdateAction" not in actions
        assert actions["DeactivateUserAction"]["methods"]["execute"]["logic"] == [
            "return $user->update(['is_active' => false]);"
        ]
        assert actions["SuspendUserAction"]["type"] == "custom"
        assert actions["SuspendUserAction"]["methods"]["execute"]["return_type"] == "mixed"


class TestRuleGenerator:
    """Tests for the rules fragment."""

    def test_rules(self, validation: AutoValidationService, post_schema: Schema) -> None:
        rules = RuleGenerator(validation).generate(post_schema).body
        assert list(rules) == [
            "UniquePostSlugRule",
            "AuthorExistsRule",
            "CategoryExistsRule",
            "PostStatusRule",
            "PostPermissionRule",
        ]
        assert rules["AuthorExistsRule"]["related_table"] == "users"
        assert rules["CategoryExistsRule"]["field"] == "category_id"
        assert rules["UniquePostSlugRule"]["methods"]["passes"]["logic"] == [
            "return ! Post::where('slug', $value)->exists();"
        ]

    def test_custom_rules_only(self, validation: AutoValidationService, user_schema: Schema) -> None:
        rules = RuleGenerator(validation).generate(
            user_schema,
            {
                "include_business_rules": False,
                "custom_rules": [{"name": "StrongPasswordRule", "message": "Too weak."}],
            },
        ).body
        assert list(rules) == ["UniqueUserEmailRule", "StrongPasswordRule"]
        assert rules["StrongPasswordRule"]["methods"]["message"]["logic"] == ["return 'Too weak.';"]
