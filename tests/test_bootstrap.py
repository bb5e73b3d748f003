import json
import threading
import unittest

from taskapp.bootstrap import BootState, SessionBootstrap
from taskapp.models import User
from taskapp.session import SessionStore
from taskapp.storage.base import USER_KEY
from taskapp.storage.memory import InMemoryStorage


class GatedStorage(InMemoryStorage):
    """Holds reads of the user record until the test lets them through."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.reading = threading.Event()
        self.release = threading.Event()

    def get_item(self, key):
        self.reading.set()
        self.release.wait(5)
        return super().get_item(key)


class ExplodingStorage(InMemoryStorage):
    def get_item(self, key):
        raise OSError("storage unavailable")


ANN = {"_id": "u1", "name": "Ann", "username": "ann"}


class TestSessionBootstrap(unittest.TestCase):
    def _make(self, storage):
        store = SessionStore(storage)
        boot = SessionBootstrap(storage, store)
        self.addCleanup(store.close)
        self.addCleanup(boot.close)
        return store, boot

    def test_starts_loading(self):
        _, boot = self._make(InMemoryStorage())
        self.assertEqual(boot.state, BootState.LOADING)
        self.assertTrue(boot.is_loading)
        self.assertFalse(boot.wait(0))

    def test_valid_record_authenticates(self):
        store, boot = self._make(InMemoryStorage({USER_KEY: json.dumps(ANN)}))
        self.assertEqual(boot.run(), BootState.AUTHENTICATED)
        self.assertTrue(store.is_authenticated)
        self.assertEqual(store.user.username, "ann")

    def test_missing_record_is_unauthenticated(self):
        store, boot = self._make(InMemoryStorage())
        self.assertEqual(boot.run(), BootState.UNAUTHENTICATED)
        self.assertFalse(store.is_authenticated)

    def test_corrupt_record_is_unauthenticated(self):
        store, boot = self._make(InMemoryStorage({USER_KEY: "{oops"}))
        with self.assertLogs("taskapp.bootstrap", level="ERROR"):
            state = boot.run()
        self.assertEqual(state, BootState.UNAUTHENTICATED)
        self.assertFalse(store.is_authenticated)

    def test_storage_exception_is_unauthenticated(self):
        _, boot = self._make(ExplodingStorage())
        with self.assertLogs("taskapp.bootstrap", level="ERROR"):
            self.assertEqual(boot.run(), BootState.UNAUTHENTICATED)

    def test_background_start_and_wait(self):
        store, boot = self._make(InMemoryStorage({USER_KEY: json.dumps(ANN)}))
        states = []
        boot.subscribe(states.append)
        boot.start()
        boot.start()
        self.assertTrue(boot.wait(5))
        self.assertEqual(boot.state, BootState.AUTHENTICATED)
        self.assertEqual(states, [BootState.AUTHENTICATED])

    def test_login_during_loading_wins(self):
        storage = GatedStorage()
        store, boot = self._make(storage)
        boot.start()
        self.assertTrue(storage.reading.wait(5))

        store.login(User(id="u2", username="new"))
        self.assertTrue(boot.is_loading)
        storage.release.set()

        self.assertTrue(boot.wait(5))
        self.assertEqual(boot.state, BootState.AUTHENTICATED)
        self.assertEqual(store.user.id, "u2")

    def test_logout_during_loading_beats_stale_record(self):
        storage = GatedStorage({USER_KEY: json.dumps(ANN)})
        store, boot = self._make(storage)
        boot.start()
        self.assertTrue(storage.reading.wait(5))

        store.logout()
        storage.release.set()

        self.assertTrue(boot.wait(5))
        self.assertEqual(boot.state, BootState.UNAUTHENTICATED)
        self.assertFalse(store.is_authenticated)

    def test_logout_reacting_to_restore_is_reflected(self):
        store, boot = self._make(InMemoryStorage({USER_KEY: json.dumps(ANN)}))

        def log_out_once_restored(session):
            if session.is_authenticated:
                store.logout()

        store.subscribe(log_out_once_restored)
        self.assertEqual(boot.run(), BootState.UNAUTHENTICATED)
        self.assertFalse(store.is_authenticated)

    def test_login_after_read_keeps_new_user(self):
        storage = InMemoryStorage({USER_KEY: json.dumps(ANN)})
        store, boot = self._make(storage)
        stale_generation = store.generation
        store.login(User(id="u2", username="new"))

        self.assertFalse(store.restore_if_generation(User(id="u1"), stale_generation))
        boot._finish()
        self.assertEqual(boot.state, BootState.AUTHENTICATED)
        self.assertEqual(store.user.id, "u2")

    def test_terminal_states_follow_login_and_logout(self):
        store, boot = self._make(InMemoryStorage())
        boot.run()
        states = []
        boot.subscribe(states.append)

        store.login(User(id="u1"))
        self.assertEqual(boot.state, BootState.AUTHENTICATED)
        store.logout()
        self.assertEqual(boot.state, BootState.UNAUTHENTICATED)
        self.assertEqual(states, [BootState.AUTHENTICATED, BootState.UNAUTHENTICATED])


if __name__ == "__main__":
    unittest.main()
