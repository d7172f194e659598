"""
wbtariffs_pipeline.pipelines — End-to-end pipeline orchestrators.

    from wbtariffs_pipeline.pipelines.tariffs import TariffPipeline

    ok = await TariffPipeline(source, repository, metrics).run_once()
"""
