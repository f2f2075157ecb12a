# example.py
"""
这是一个 dict-core API 的最小示例。

它演示了如何将 dict-core 作为一个库导入到你自己的项目中，
完成一次“连接-查询-关闭”的流程。

运行此示例：
1. 可选：在根目录创建 config.toml ([dict] 节) 或 .env 文件 (DICT_HOST=...)。
2. 确保已安装依赖： pip install -e .
3. 从项目根目录运行： python example.py [词条]
"""

import asyncio
import logging
import sys
from pathlib import Path

from dict_core import (
    ConfigError,
    DictError,
    DictSession,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# --- 1. 配置日志 ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("DictExample")

PROJECT_ROOT = Path(__file__).resolve().parent


def load_config():
    """按 config.toml -> .env/环境变量 -> dict.org 的顺序加载配置。"""
    config_path = PROJECT_ROOT / "config.toml"
    if config_path.exists():
        logger.info(f"发现配置文件: {config_path}")
        return load_config_from_toml(config_path)

    env_path = PROJECT_ROOT / ".env"
    try:
        return load_config_from_env(env_path if env_path.exists() else None)
    except ConfigError:
        logger.info("未找到配置，使用公共服务器 dict.org")
        return create_config_from_dict({"host": "dict.org", "client_name": "dict-core"})


async def main(word: str) -> int:
    config = load_config()

    try:
        async with DictSession(config) as session:
            databases = await session.list_databases()
            logger.info(f"服务器提供 {len(databases)} 个数据库")

            definitions = await session.define(word, "!")
            if not definitions:
                suggestions = await session.match(word, "lev")
                print(f"未找到 '{word}'，你是不是要找: {', '.join(suggestions) or '(无)'}")
                return 1

            for definition in definitions:
                print(f"--- {definition.headword} [{definition.database.description}]")
                print(definition.text)

    except DictError as e:
        logger.error(f"查询失败: {e}")
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "dictionary")))
