import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from filedrive.core.errors import ConflictError, ExternalServiceError, NotFoundError, ValidationError
from filedrive.models.file import File
from filedrive.models.folder import Folder
from filedrive.services import folders as folder_service
from filedrive.services.files import create_files
from filedrive.services.folders import (
    collect_subtree,
    create_folder,
    delete_folder,
    folder_breadcrumb,
    get_folder_by_name,
    list_child_folders,
    move_folder,
    rename_folder,
    resolve_folder_id,
    resolve_path,
    split_path,
)


def _folder_count(db) -> int:
    return db.scalar(select(func.count()).select_from(Folder))


def _add_files(db, blob_store, user, folder, *names):
    uploads = [blob_store.upload(b"data", name) for name in names]
    create_files(db, uploads, user.id, folder.id if folder else None)
    return [upload.blob_id for upload in uploads]


def test_split_path_normalizes_slashes():
    assert split_path("") == []
    assert split_path(None) == []
    assert split_path("/") == []
    assert split_path("/docs//reports/") == ["docs", "reports"]


def test_resolve_path_returns_nested_folder(db, user, other_user):
    docs = create_folder(db, user.id, "docs")
    reports = create_folder(db, user.id, "reports", docs.id)

    assert resolve_path(db, user.id, ["docs", "reports"]).id == reports.id
    assert resolve_path(db, user.id, ["docs"]).id == docs.id

    with pytest.raises(ConflictError):
        create_folder(db, user.id, "docs")
    assert create_folder(db, other_user.id, "docs").user_id == other_user.id


def test_resolve_path_never_partially_matches(db, user):
    a = create_folder(db, user.id, "a")
    create_folder(db, user.id, "b", a.id)
    create_folder(db, user.id, "b")

    with pytest.raises(NotFoundError):
        resolve_path(db, user.id, ["a", "missing", "b"])
    with pytest.raises(NotFoundError):
        resolve_path(db, user.id, ["b", "a"])


def test_resolve_path_is_scoped_to_owner(db, user, other_user):
    create_folder(db, user.id, "private")

    with pytest.raises(NotFoundError):
        resolve_path(db, other_user.id, ["private"])


def test_resolve_folder_id_treats_empty_path_as_root(db, user):
    docs = create_folder(db, user.id, "docs")

    assert resolve_folder_id(db, user.id, "") is None
    assert resolve_folder_id(db, user.id, "/") is None
    assert resolve_folder_id(db, user.id, "docs/") == docs.id
    assert resolve_folder_id(db, user.id, ["docs"]) == docs.id


def test_resolve_path_rejects_empty_segment_list(db, user):
    with pytest.raises(ValidationError):
        resolve_path(db, user.id, [])


def test_sibling_collisions_conflict_at_every_depth(db, user):
    level1 = create_folder(db, user.id, "level1")
    level2 = create_folder(db, user.id, "level2", level1.id)
    create_folder(db, user.id, "leaf", level2.id)
    before = _folder_count(db)

    with pytest.raises(ConflictError):
        create_folder(db, user.id, "level1")
    with pytest.raises(ConflictError):
        create_folder(db, user.id, "level2", level1.id)
    with pytest.raises(ConflictError):
        create_folder(db, user.id, "leaf", level2.id)

    assert _folder_count(db) == before
    # Same name under a different parent is fine.
    assert create_folder(db, user.id, "leaf", level1.id).parent_folder_id == level1.id


def test_store_rejects_duplicate_root_folder_without_precheck(db, user):
    db.add(Folder(name="dup", user_id=user.id, parent_folder_id=None))
    db.commit()
    db.add(Folder(name="dup", user_id=user.id, parent_folder_id=None))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_store_conflict_surfaces_as_conflict_error(db, user, monkeypatch):
    parent = create_folder(db, user.id, "parent")
    create_folder(db, user.id, "child", parent.id)
    create_folder(db, user.id, "rootdup")
    monkeypatch.setattr(folder_service, "_sibling", lambda *args: None)

    with pytest.raises(ConflictError):
        create_folder(db, user.id, "child", parent.id)
    with pytest.raises(ConflictError):
        create_folder(db, user.id, "rootdup")
    assert _folder_count(db) == 3


def test_store_conflict_on_rename_and_move_folder(db, user, monkeypatch):
    parent = create_folder(db, user.id, "parent")
    create_folder(db, user.id, "a", parent.id)
    b = create_folder(db, user.id, "b", parent.id)
    create_folder(db, user.id, "r1")
    r2 = create_folder(db, user.id, "r2")
    stray = create_folder(db, user.id, "a")
    create_folder(db, user.id, "b")
    monkeypatch.setattr(folder_service, "_sibling", lambda *args: None)

    with pytest.raises(ConflictError):
        rename_folder(db, b.id, user.id, "a")
    with pytest.raises(ConflictError):
        rename_folder(db, r2.id, user.id, "r1")
    with pytest.raises(ConflictError):
        move_folder(db, stray.id, user.id, parent.id)
    with pytest.raises(ConflictError):
        move_folder(db, b.id, user.id, None)

    db.refresh(b)
    db.refresh(r2)
    db.refresh(stray)
    assert (b.name, b.parent_folder_id) == ("b", parent.id)
    assert (r2.name, r2.parent_folder_id) == ("r2", None)
    assert (stray.name, stray.parent_folder_id) == ("a", None)


@pytest.mark.parametrize(
    ("user_id", "name", "parent_id"),
    [
        ("", "docs", None),
        (None, "docs", None),
        ("user", "", None),
        ("user", "   ", None),
        ("user", "bad/name", None),
        ("user", "docs", 42),
    ],
)
def test_create_folder_validation(db, user_id, name, parent_id):
    with pytest.raises(ValidationError):
        create_folder(db, user_id, name, parent_id)


def test_create_folder_inside_another_users_folder_is_not_found(db, user, other_user):
    theirs = create_folder(db, other_user.id, "theirs")

    with pytest.raises(NotFoundError):
        create_folder(db, user.id, "mine", theirs.id)


def test_list_child_folders_returns_one_level_with_owner_name(db, user, other_user):
    docs = create_folder(db, user.id, "docs")
    create_folder(db, user.id, "b-reports", docs.id)
    create_folder(db, user.id, "a-drafts", docs.id)
    nested = create_folder(db, user.id, "nested", docs.id)
    create_folder(db, user.id, "deep", nested.id)
    create_folder(db, other_user.id, "docs")

    children = list_child_folders(db, user.id, docs.id)
    assert [f.name for f in children] == ["a-drafts", "b-reports", "nested"]
    assert {f.owner_username for f in children} == {"alice"}
    assert [f.name for f in list_child_folders(db, user.id)] == ["docs"]
    assert list_child_folders(db, user.id, nested.id)[0].name == "deep"
    assert list_child_folders(db, other_user.id, None)[0].user_id == other_user.id


def test_list_child_folders_empty(db, user):
    assert list_child_folders(db, user.id) == []


def test_get_folder_by_name(db, user):
    docs = create_folder(db, user.id, "docs")
    inner = create_folder(db, user.id, "inner", docs.id)

    assert get_folder_by_name(db, user.id, "inner", docs.id).id == inner.id
    with pytest.raises(NotFoundError):
        get_folder_by_name(db, user.id, "inner")


def test_rename_folder(db, user):
    docs = create_folder(db, user.id, "docs")

    renamed = rename_folder(db, docs.id, user.id, "  My_Docs-2024 ")
    assert renamed.name == "My_Docs-2024"
    assert resolve_path(db, user.id, ["My_Docs-2024"]).id == docs.id


def test_rename_folder_to_its_current_name_succeeds(db, user):
    docs = create_folder(db, user.id, "docs")

    assert rename_folder(db, docs.id, user.id, "docs").name == "docs"


def test_rename_folder_conflict_with_sibling(db, user):
    parent = create_folder(db, user.id, "parent")
    a = create_folder(db, user.id, "a", parent.id)
    create_folder(db, user.id, "b", parent.id)
    create_folder(db, user.id, "c")

    with pytest.raises(ConflictError):
        rename_folder(db, a.id, user.id, "b")
    assert rename_folder(db, a.id, user.id, "c").name == "c"


@pytest.mark.parametrize("new_name", ["", "   ", "dots.not.allowed", "slash/name", "emoji✓"])
def test_rename_folder_validation(db, user, new_name):
    docs = create_folder(db, user.id, "docs")

    with pytest.raises(ValidationError):
        rename_folder(db, docs.id, user.id, new_name)
    db.refresh(docs)
    assert docs.name == "docs"


def test_rename_other_users_folder_is_not_found(db, user, other_user):
    theirs = create_folder(db, other_user.id, "theirs")

    with pytest.raises(NotFoundError):
        rename_folder(db, theirs.id, user.id, "stolen")


def test_delete_folder_purges_whole_subtree_in_one_batch(db, user, blob_store):
    root = create_folder(db, user.id, "root")
    keep = create_folder(db, user.id, "keep")
    child_a = create_folder(db, user.id, "child-a", root.id)
    child_b = create_folder(db, user.id, "child-b", root.id)
    grandchild = create_folder(db, user.id, "grandchild", child_a.id)
    great = create_folder(db, user.id, "great", grandchild.id)

    expected = []
    expected += _add_files(db, blob_store, user, root, "r1.txt", "r2.txt")
    expected += _add_files(db, blob_store, user, child_a, "a.txt")
    expected += _add_files(db, blob_store, user, child_b, "b.txt")
    expected += _add_files(db, blob_store, user, grandchild, "g.txt")
    expected += _add_files(db, blob_store, user, great, "deep.txt")
    kept = _add_files(db, blob_store, user, keep, "keep.txt")

    delete_folder(db, blob_store, root.id, user.id)

    assert len(blob_store.batch_calls) == 1
    assert sorted(blob_store.batch_calls[0]) == sorted(expected)
    assert set(blob_store.blobs) == set(kept)
    assert [f.name for f in db.scalars(select(Folder)).all()] == ["keep"]
    assert [f.cloud_id for f in db.scalars(select(File)).all()] == kept


def test_delete_folder_keeps_everything_when_blob_purge_fails(db, user, blob_store):
    root = create_folder(db, user.id, "root")
    child = create_folder(db, user.id, "child", root.id)
    _add_files(db, blob_store, user, root, "r.txt")
    _add_files(db, blob_store, user, child, "c.txt")
    blob_store.fail_deletes = True

    with pytest.raises(ExternalServiceError):
        delete_folder(db, blob_store, root.id, user.id)

    assert _folder_count(db) == 2
    assert db.scalar(select(func.count()).select_from(File)) == 2
    assert len(blob_store.blobs) == 2

    blob_store.fail_deletes = False
    delete_folder(db, blob_store, root.id, user.id)
    assert _folder_count(db) == 0
    assert blob_store.blobs == {}


def test_delete_empty_folder_skips_blob_store(db, user, blob_store):
    empty = create_folder(db, user.id, "empty")

    delete_folder(db, blob_store, empty.id, user.id)

    assert blob_store.batch_calls == []
    assert _folder_count(db) == 0


def test_delete_other_users_folder_is_not_found(db, user, other_user, blob_store):
    theirs = create_folder(db, other_user.id, "theirs")

    with pytest.raises(NotFoundError):
        delete_folder(db, blob_store, theirs.id, user.id)
    assert _folder_count(db) == 1


def test_collect_subtree_walks_all_levels(db, user, blob_store):
    a = create_folder(db, user.id, "a")
    b = create_folder(db, user.id, "b", a.id)
    c = create_folder(db, user.id, "c", b.id)
    blob_ids = _add_files(db, blob_store, user, c, "x.txt")

    folder_ids, collected = collect_subtree(db, a.id)

    assert folder_ids == [a.id, b.id, c.id]
    assert collected == blob_ids


def test_move_folder(db, user):
    a = create_folder(db, user.id, "a")
    b = create_folder(db, user.id, "b")

    moved = move_folder(db, b.id, user.id, a.id)

    assert moved.parent_folder_id == a.id
    assert resolve_path(db, user.id, ["a", "b"]).id == b.id
    assert move_folder(db, b.id, user.id, None).parent_folder_id is None


def test_move_folder_rejects_cycles(db, user):
    a = create_folder(db, user.id, "a")
    b = create_folder(db, user.id, "b", a.id)
    c = create_folder(db, user.id, "c", b.id)

    with pytest.raises(ValidationError):
        move_folder(db, a.id, user.id, c.id)
    with pytest.raises(ValidationError):
        move_folder(db, a.id, user.id, a.id)
    db.refresh(a)
    assert a.parent_folder_id is None


def test_move_folder_conflict_and_ownership(db, user, other_user):
    a = create_folder(db, user.id, "a")
    create_folder(db, user.id, "x", a.id)
    x = create_folder(db, user.id, "x")
    theirs = create_folder(db, other_user.id, "theirs")

    with pytest.raises(ConflictError):
        move_folder(db, x.id, user.id, a.id)
    with pytest.raises(NotFoundError):
        move_folder(db, x.id, user.id, theirs.id)


def test_folder_breadcrumb(db, user):
    a = create_folder(db, user.id, "a")
    b = create_folder(db, user.id, "b", a.id)
    c = create_folder(db, user.id, "c", b.id)

    assert [f.name for f in folder_breadcrumb(db, c)] == ["a", "b", "c"]
    assert folder_breadcrumb(db, None) == []
