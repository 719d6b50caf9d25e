# models package

# 导入数据库模型子模块
from . import database
# 导入Pydantic模型子模块
from . import schemas

# 定义公开接口
__all__ = ["database", "schemas"]