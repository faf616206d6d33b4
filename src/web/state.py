import threading
import time


class SharedState:
    """
    Singleton class to share state between the main processing loop
    and the FastAPI control server.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance.engine = None
                    cls._instance.engine_lock = threading.Lock()
                    cls._instance.config = None
                    cls._instance.config_lock = threading.Lock()
                    cls._instance.config_path = None
                    cls._instance.system_stats = {
                        "start_time": 0,
                        "last_frame_ts": None,
                    }
        return cls._instance

    def set_engine(self, engine):
        with self.engine_lock:
            self.engine = engine

    def get_engine(self):
        with self.engine_lock:
            return self.engine

    def mark_frame(self):
        """Record that a detection frame was just handled."""
        self.system_stats["last_frame_ts"] = time.time()

    def set_config(self, config, config_path):
        with self.config_lock:
            self.config = config
            self.config_path = config_path

    def get_config_copy(self):
        with self.config_lock:
            if self.config is None:
                return None
            # shallow copy of dict tree is fine for read-mostly usage
            return dict(self.config)

    def update_system_stats(self, stats):
        self.system_stats.update(stats)

    def get_system_stats_copy(self):
        """Return a shallow copy of current system stats."""
        return dict(self.system_stats)

    def reset(self):
        """Forget the engine and config (used between tests)."""
        self.set_engine(None)
        self.set_config(None, None)
        self.system_stats = {"start_time": 0, "last_frame_ts": None}


# Global instance
state = SharedState()
