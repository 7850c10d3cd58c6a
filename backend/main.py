"""
Salify 启动入口

    python main.py            启动服务（开发环境自动 reload）
    python main.py init-db    只建表并写入基础数据
"""
import asyncio
import os
import sys

import uvicorn

FROZEN = getattr(sys, 'frozen', False)

# PyInstaller 打包后以可执行文件所在目录为工作目录（数据库、日志、备份都在这里）
if FROZEN:
    os.chdir(os.path.dirname(sys.executable))


def run_server():
    uvicorn.run(
        "salify.main:app",
        host=os.getenv("SALIFY_HOST", "127.0.0.1"),  # 默认只监听本地
        port=int(os.getenv("SALIFY_PORT", "8000")),
        reload=not FROZEN,
        log_level="info"
    )


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "init-db":
        from salify.db.init_db import init_db
        asyncio.run(init_db())
    else:
        run_server()
