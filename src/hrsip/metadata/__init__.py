SAMPLE_ID_COL = "#SampleID"
