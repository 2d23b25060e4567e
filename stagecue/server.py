"""
Server startup configuration for containerized deployment.
"""

import uvicorn
from stagecue.core.config import settings

def get_server_config():
    """Get server configuration based on environment"""

    config = {
        'app': "stagecue.main:app",
        'host': settings.HOST,
        'port': settings.PORT,
        'log_level': settings.LOG_LEVEL.lower(),
        'access_log': False,  # RequestLoggingMiddleware logs every request
        'timeout_keep_alive': settings.TIMEOUT_KEEP_ALIVE,
        'timeout_graceful_shutdown': settings.TIMEOUT_GRACEFUL_SHUTDOWN,
    }

    if settings.ENVIRONMENT == 'development':
        config.update({
            'reload': True,
            'reload_dirs': ['stagecue'],
        })
    else:
        # The cue engine keeps its state in memory, so a single worker owns it
        if settings.WORKERS != 1:
            print(f"WARNING: WORKERS={settings.WORKERS} ignored; stagecue runs one worker")

    return config

def start_server():
    """Start the server with appropriate configuration"""
    uvicorn.run(**get_server_config())

if __name__ == "__main__":
    start_server()
