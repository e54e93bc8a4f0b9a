from pydantic import BaseModel
from typing import Optional, Any

# 统一响应外壳，data 里放各接口自己的数据
class ApiResponse(BaseModel):
    code: int = 200
    message: str = "success"
    data: Optional[Any] = None

# 列表数据的公共字段
class ListData(BaseModel):
    total: int
