from native_histograms.server import main

main()
