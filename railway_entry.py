import threading

import main
import server
from config import Config
from logs import set_log_file
from pipeline import build_pipeline

if __name__ == "__main__":
    print("💧  INITIALIZING DRIP PROTOCOL FOR RAILWAY 💧")

    config = Config.from_env()
    set_log_file(config.log_file_path)
    pipeline = build_pipeline(config)

    # 1. Start the Web Server (Daemon thread), sharing the scheduler's pipeline
    t_server = threading.Thread(target=server.run_server, args=(pipeline, config.port, config.web_dir), daemon=True)
    t_server.start()

    # 2. Run the scheduler loop (blocking)
    try:
        main.main(pipeline)
    except KeyboardInterrupt:
        print("Shutting down...")
