from bootstrap import run_bootstrap
from identity import JsonIdentityStore
from models import Post
from storage import JsonStorage


def test_creates_data_file_role_and_admin(tmp_path):
    storage = JsonStorage(tmp_path / "blog.json")
    identity = JsonIdentityStore(storage)

    run_bootstrap(storage, identity)

    data = storage.load()
    assert data["roles"] == [{"name": "Admin"}]
    assert [u["username"] for u in data["users"]] == ["admin"]
    assert identity.roles_for("admin") == ["Admin"]
    assert identity.verify_password("admin", "password1")
    assert not identity.verify_password("admin", "wrong")


def test_running_twice_creates_nothing_new(storage, identity):
    run_bootstrap(storage, identity)
    first = storage.load()
    run_bootstrap(storage, identity)

    data = storage.load()
    assert data == first
    assert [r["name"] for r in data["roles"]].count("Admin") == 1
    assert [u["username"] for u in data["users"]].count("admin") == 1


def test_existing_posts_survive(storage, identity, repo):
    repo.add_post(Post(title="kept"))
    assert repo.save_changes()
    run_bootstrap(storage, identity)
    assert [p.title for p in repo.get_all_posts()] == ["kept"]


class FakeIdentity:
    def __init__(self, fail=False):
        self.roles = set()
        self.users = {}
        self.fail = fail

    def ensure_role(self, name):
        if self.fail:
            raise RuntimeError("identity backend down")
        if name in self.roles:
            return False
        self.roles.add(name)
        return True

    def ensure_user(self, username, email, password, role):
        if username in self.users:
            return False
        self.users[username] = role
        return True


def test_uses_only_the_narrow_identity_capabilities(storage):
    fake = FakeIdentity()
    run_bootstrap(storage, fake)
    run_bootstrap(storage, fake)
    assert fake.roles == {"Admin"}
    assert fake.users == {"admin": "Admin"}


def test_failure_is_logged_not_raised(storage, caplog):
    run_bootstrap(storage, FakeIdentity(fail=True))
    assert "Bootstrap did not complete" in caplog.text


def test_unreadable_data_file_is_not_fatal(tmp_path, caplog):
    path = tmp_path / "blog.json"
    path.write_text("{not json")
    storage = JsonStorage(path)

    run_bootstrap(storage, JsonIdentityStore(storage))
    assert "Bootstrap did not complete" in caplog.text


def test_second_run_does_not_rewrite_data_file(storage, identity, monkeypatch):
    run_bootstrap(storage, identity)
    writes = []
    original = storage._write
    monkeypatch.setattr(storage, "_write", lambda data: writes.append(data) or original(data))

    run_bootstrap(storage, identity)
    assert writes == []
