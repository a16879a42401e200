from core.models import User

DEVICE_ID = "test-device-0123456789"
TTL_MS = 60 * 60 * 1000
START_MS = 1_700_000_000_000


class FakeClock:
    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class FakeTimer:
    def __init__(self, due_ms: int, delay_ms: int, callback):
        self.due_ms = due_ms
        self.delay_ms = delay_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Records timers; `run_due()` fires the ones whose time has come on the fake clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.timers = []

    def call_later(self, delay_ms, callback):
        timer = FakeTimer(self.clock() + delay_ms, delay_ms, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]

    def run_due(self) -> int:
        fired = 0
        for timer in list(self.timers):
            if not timer.cancelled and timer.due_ms <= self.clock():
                timer.cancelled = True
                timer.callback()
                fired += 1
        return fired


class FakeApi:
    """Stands in for ApiClient: every call is recorded, answers come from `responses`/`errors`."""

    def __init__(self):
        self.calls = []
        self.errors = {}
        self.responses = {
            "get_jobs": [],
            "get_my_jobs": [],
            "get_my_applications": [],
            "get_job_applicants": [],
        }

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            if name in self.errors:
                raise self.errors[name]
            result = self.responses.get(name)
            return result(*args, **kwargs) if callable(result) else result

        return method

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


def make_user(**overrides) -> User:
    data = {
        "_id": "u1",
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "+919876543210",
        "location": "Pune",
        "workCategories": ["Cleaning"],
        "bio": "Reliable and quick with cleaning jobs.",
        "role": "seeker",
    }
    data.update(overrides)
    return User.model_validate(data)


def make_provider(**overrides) -> User:
    fields = {"_id": "p1", "name": "Ravi Shah", "email": "ravi@example.com", "role": "provider",
              "workCategories": [], "bio": ""}
    fields.update(overrides)
    return make_user(**fields)

