"""
Geo 批量导出客户端 - 后端核心模块

模块结构：
- config/     运行期配置加载
- models/     数据模型定义（后端记录/导出单元/状态/任务）
- export/     导出处理（路径派生/记录拼接/批注合并/上传）
- pipeline/   批处理编排（游标/状态通道/执行器/任务管理）
- remote/     后端通信（HTTP接口/通知流）
"""

__version__ = "0.1.0"
